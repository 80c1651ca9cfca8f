# Logging, error, security and activity helpers
