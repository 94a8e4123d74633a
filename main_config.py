import os
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_DIR = os.environ.get("HOTEL_DB_DIR") or os.path.join(BASE_DIR, "db")
HOTEL_DB_PATH = os.path.join(DB_DIR, "hotel.db")
JOBS_DB_PATH = os.path.join(DB_DIR, "jobs.db")

PROMPTS_DIR = os.path.join(BASE_DIR, "prompts")
DEFAULT_SYSTEM_PROMPT_PATH = os.path.join(PROMPTS_DIR, "hotel_system_prompt.md")
