import os

DATABASE_URL = os.getenv("DATABASE_URL", "").replace("postgres://", "postgresql://", 1)
SQLALCHEMY_DATABASE_URI = DATABASE_URL

SECRET_KEY = os.getenv("SECRET_KEY")

# Model used by the create-calculator endpoint
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Row limits for list endpoints
HISTORY_PAGE_LIMIT = int(os.getenv("HISTORY_PAGE_LIMIT", "50"))
MARKETPLACE_PAGE_LIMIT = int(os.getenv("MARKETPLACE_PAGE_LIMIT", "50"))
