"""Santa tour live sleigh tracking app."""

import time

# Sent to WebSocket clients so they can detect a server restart.
STARTUP_TIMESTAMP: int = int(time.time())
