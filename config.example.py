# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKMINDER_APP_NAME": "App display name (default: taskminder).",
    "TASKMINDER_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKMINDER_DATA_DIR": "Local data directory (default: .local/taskminder).",
    "TASKMINDER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKMINDER_LOG_DIR": "Directory for the rotating <app_name>.log file (default: <data_dir>).",
    # Reminders
    "TASKMINDER_ALARM_MISFIRE_GRACE_SECONDS": (
        "How late (seconds) a reminder may still fire if the process was busy (default: 60)."
    ),
    # Console
    "TASKMINDER_DEFAULT_VIEW": "Initial list: all | pending | completed (default: all).",
}
