"""
Quest Ledger entry point.
"""
import os
import sys
import traceback

print("[QuestLedger] ========================================")
print("[QuestLedger] Starting Quest Ledger v0.1.0")
print("[QuestLedger] ========================================")

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[QuestLedger] Config: {config_name}")
print(f"[QuestLedger] PORT: {os.getenv('PORT', 'not set')}")
print(f"[QuestLedger] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")

try:
    from questledger import create_app
    app = create_app(config_name)
    print(f"[QuestLedger] App created, {len(list(app.url_map.iter_rules()))} routes")
except Exception as e:
    print(f"[QuestLedger] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
