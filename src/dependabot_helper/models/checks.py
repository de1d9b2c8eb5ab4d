from __future__ import annotations

from enum import Enum


class ChecksStatus(str, Enum):
    PENDING = "pending"
    ERROR = "error"
    SUCCESS = "success"
