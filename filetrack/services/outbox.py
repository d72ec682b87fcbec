"""
Post-commit side effects.

A transition queues its ledger write, notifications and emails here while
it runs and calls ``dispatch`` once its own transaction has committed.
Failures are logged and skipped; they never reach the caller.
"""
from typing import Callable, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session


log = structlog.get_logger(__name__)

Effect = Callable[[Session], object]


class SideEffects:
    def __init__(self, file_code: Optional[str] = None):
        self.file_code = file_code
        self._effects: List[Tuple[str, Effect]] = []

    def add(self, label: str, fn: Effect) -> None:
        self._effects.append((label, fn))

    def __len__(self) -> int:
        return len(self._effects)

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self._effects]

    def dispatch(self, db: Session) -> int:
        """Run queued effects in order. Returns how many failed."""
        failed = 0
        effects, self._effects = self._effects, []
        for label, fn in effects:
            try:
                fn(db)
            except Exception as e:
                failed += 1
                try:
                    db.rollback()
                except Exception as rb:
                    log.warning("side_effect_rollback_failed", effect=label, error=str(rb))
                log.warning("side_effect_failed", effect=label, file_code=self.file_code, error=str(e))
        return failed
