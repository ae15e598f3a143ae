"""
utils/config.py
────────────────────────────
Centralized configuration for PureMind, read from the environment (.env).
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    """Centralized configuration with validation"""
    openai_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    mongo_uri: str = field(default_factory=lambda: os.getenv("MONGO_URI", ""))
    db_name: str = field(default_factory=lambda: os.getenv("MONGODB_DB", "puremind_db"))
    admin_email: str = field(default_factory=lambda: os.getenv("PUREMIND_ADMIN_EMAIL", ""))
    log_dir: str = field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))
    notification_dedupe_seconds: int = field(
        default_factory=lambda: int(os.getenv("NOTIFICATION_DEDUPE_SECONDS", "300"))
    )

    def validate(self) -> List[str]:
        """Return list of missing required env vars"""
        missing = []
        required = {
            "MONGO_URI": self.mongo_uri,
        }
        for key, value in required.items():
            if not value:
                missing.append(key)
        return missing


CONFIG = Config()
