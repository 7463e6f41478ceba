import logging
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    """Primary result of a cascade plus warnings from advisory side effects.

    Advisory steps report failures here instead of raising; the caller still
    sees the primary outcome as a success.
    """
    value: T
    warnings: List[str] = field(default_factory=list)

    def advise(self, logger: logging.Logger, message: str, *args: Any, exc: Optional[BaseException] = None) -> None:
        text = message % args if args else message
        if exc is not None:
            logger.error("%s: %s", text, exc)
        else:
            logger.warning(text)
        self.warnings.append(text)
