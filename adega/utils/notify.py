# adega/utils/notify.py
"""User-facing notices (the storefront shows them as toasts)."""
from __future__ import annotations
import logging
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Notice:
    title: str
    description: str | None = None
    variant: str = "default"   # "default" | "destructive"

class Notifier:
    def __init__(self):
        self.notices: list[Notice] = []

    def notify(self, title, description=None, variant="default"):
        n = Notice(title=title, description=description, variant=variant)
        self.notices.append(n)
        logger.debug("notice: %s - %s", title, description)
        return n

    def error(self, title, description=None):
        return self.notify(title, description, variant="destructive")

    def drain(self) -> list[dict]:
        out = [asdict(n) for n in self.notices]
        self.notices.clear()
        return out
