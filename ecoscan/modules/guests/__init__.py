"""Guest progress migration."""
