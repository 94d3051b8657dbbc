"""
Configuration management for the Quest Ledger engine.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared secret for internal callers (booking, review, billing services).
    # Empty means the API is open, which is only accepted outside production.
    INTERNAL_API_KEY = os.getenv('INTERNAL_API_KEY', '')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Crediting retries on optimistic-concurrency conflicts
    CREDIT_MAX_RETRIES = int(os.getenv('CREDIT_MAX_RETRIES', '3'))
    CREDIT_RETRY_BACKOFF = float(os.getenv('CREDIT_RETRY_BACKOFF', '0.05'))  # seconds, grows per attempt

    # Read views
    RECENT_LEDGER_ENTRIES = 10
    HISTORY_MAX_PER_PAGE = 100

    # Tier table cache (catalog data only, never balances)
    CATALOG_CACHE_TIMEOUT = int(os.getenv('CATALOG_CACHE_TIMEOUT', '60'))


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///questledger_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')
    _internal_api_key = os.getenv('INTERNAL_API_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError("CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!")

        return cls._secret_key

    @classmethod
    def validate_internal_api_key(cls) -> str:
        """Production callers must authenticate; an open ledger API is refused."""
        if not cls._internal_api_key:
            raise RuntimeError(
                "CRITICAL: INTERNAL_API_KEY environment variable is not set!\n"
                "The rewards API cannot run unauthenticated in production."
            )
        return cls._internal_api_key

    SECRET_KEY = _secret_key  # Will be validated at app startup
    INTERNAL_API_KEY = _internal_api_key


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    INTERNAL_API_KEY = ''
    CREDIT_RETRY_BACKOFF = 0


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
        ProductionConfig.validate_internal_api_key()
