"""Best-effort Telegram notifications for teachers and managers."""
