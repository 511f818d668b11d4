# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Nothing here is imported by scriptdeck; it exists to make the repo self-documenting.
"""

ENV_VARS = {
    # App / logging
    "SCRIPTDECK_APP_NAME": "App display name (default: scriptdeck).",
    "SCRIPTDECK_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "SCRIPTDECK_DATA_DIR": "Local data directory holding scriptdeck.log (default: .local/scriptdeck).",
    # Project scope
    "SCRIPTDECK_PROJECT_DIR": "Project opened at startup (default: current working directory).",
    # Tasks
    "SCRIPTDECK_MAX_LOGS": "Log entries kept per task; oldest are evicted first (default: 2000).",
    "SCRIPTDECK_PACKAGE_MANAGER": "Force npm/yarn/pnpm/... instead of lockfile detection.",
    "SCRIPTDECK_CLEAR_LOGS_ON_RUN": "Start every re-run with empty logs (true/false, default: false).",
    "SCRIPTDECK_READ_CHUNK_SIZE": "Max bytes read from a script's stdout/stderr at once (default: 65536).",
    # Console
    "SCRIPTDECK_CONSOLE_ECHO_OUTPUT": "Echo script output in the console (true/false, default: true).",
}
