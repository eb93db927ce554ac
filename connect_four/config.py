"""Runtime configuration read from the environment (and an optional .env file)."""

import os

from dotenv import load_dotenv

load_dotenv()

BOARD_COLUMNS = int(os.getenv("BOARD_COLUMNS", "7"))
BOARD_ROWS = int(os.getenv("BOARD_ROWS", "6"))
CONNECT_N = 4

# Pause before the computer drops its piece, in seconds
COMPUTER_MOVE_DELAY = float(os.getenv("COMPUTER_MOVE_DELAY", "0.7"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174").split(",")
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
