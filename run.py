"""
Funnel dashboard entry point.
"""
import os
import sys
import traceback

print("[FunnelDashboard] ========================================")
print("[FunnelDashboard] Starting funnel dashboard v1.0.0")
print("[FunnelDashboard] ========================================")

config_name = os.getenv('FLASK_ENV', 'production')
print(f"[FunnelDashboard] Config: {config_name}")
print(f"[FunnelDashboard] PORT: {os.getenv('PORT', 'not set')}")
print(f"[FunnelDashboard] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")
print(f"[FunnelDashboard] DATABASE_SERVICE_KEY: {'set' if os.getenv('DATABASE_SERVICE_KEY') else 'NOT SET'}")

try:
    from funnel_dashboard import create_app
    app = create_app(config_name)
    print(f"[FunnelDashboard] Routes: {len(list(app.url_map.iter_rules()))}")
except Exception as e:
    print(f"[FunnelDashboard] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
