# backend/eventhub/__init__.py
"""
Package init: load environment variables from a .env file if present.
This runs before the db, reminder and app modules read their settings
with os.getenv.
"""

from dotenv import load_dotenv

load_dotenv()
