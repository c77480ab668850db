"""Runtime configuration loaded from environment variables."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .models import CARD, CASH

DEFAULT_API_BASE = "http://localhost:5000"


class Settings(BaseModel):
    """Terminal settings."""

    api_base: str = Field(default=DEFAULT_API_BASE, description="Backend base URL")
    static_base: Optional[str] = Field(None, description="Base URL for static assets")
    cashier_name: str = Field(default="Cashier", description="Name printed on receipts")
    username: Optional[str] = None
    password: Optional[str] = None
    session_file: str = Field(default_factory=lambda: str(Path.home() / ".pos_session.json"))
    request_timeout: float = Field(default=30.0, gt=0)
    checkout_timeout: float = Field(default=15.0, gt=0)
    payment_methods: list[str] = Field(default_factory=lambda: [CASH, CARD])
    backend_command: Optional[str] = None
    backend_dir: Optional[str] = None

    @property
    def asset_base(self) -> str:
        """Base URL used to build category image URLs."""
        return (self.static_base or self.api_base).rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from POS_* environment variables.

        Unset variables keep their defaults. Cash and Card are always
        accepted; POS_PAYMENT_METHODS may add more (comma separated).
        """
        values: dict = {}
        env_map = {
            "POS_API_BASE": "api_base",
            "POS_STATIC_BASE": "static_base",
            "POS_CASHIER": "cashier_name",
            "POS_USERNAME": "username",
            "POS_PASSWORD": "password",
            "POS_SESSION_FILE": "session_file",
            "POS_REQUEST_TIMEOUT": "request_timeout",
            "POS_CHECKOUT_TIMEOUT": "checkout_timeout",
            "POS_BACKEND_COMMAND": "backend_command",
            "POS_BACKEND_DIR": "backend_dir",
        }
        for env_name, field_name in env_map.items():
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value

        methods = [CASH, CARD]
        for method in os.environ.get("POS_PAYMENT_METHODS", "").split(","):
            method = method.strip()
            if method and method not in methods:
                methods.append(method)
        values["payment_methods"] = methods

        return cls(**values)
