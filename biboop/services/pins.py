import json
import logging
import secrets
import string
from typing import Any, Callable, Dict, Optional, Sequence

from pydantic import BaseModel

from ..pin_store import Entry, PinStore, make_key

logger = logging.getLogger(__name__)

PIN_ALPHABET = string.ascii_uppercase + string.digits


class PinError(RuntimeError):
    status_code = 500
    message = "Pin error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class PinCapacityError(PinError):
    status_code = 429
    message = "Could not find a free pin soon enough."


class PinNotFoundError(PinError):
    status_code = 404
    message = "Pin not found."


class PayloadTooLargeError(PinError):
    status_code = 413
    message = "Payload too large."


class PayloadSerializationError(PinError):
    status_code = 500
    message = "Payload could not be serialized."


class PinResponse(BaseModel):
    pin: str
    result: Optional[Dict[str, Any]] = None


class PinGenerator:
    """
    Mints random pins that are free in a namespace at the time of the check.

    The existence check and the insert are separate store calls. Two
    concurrent generators can both see a label as free and the later insert
    wins; with 36**4 labels this is rare and the attempt budget keeps
    generation bounded either way.
    """

    def __init__(
        self,
        store: PinStore,
        length: int = 4,
        attempts: int = 10,
        choice: Callable[[Sequence[str]], str] = secrets.choice,
    ):
        self.store = store
        self.length = length
        self.attempts = attempts
        self._choice = choice

    def candidate(self) -> str:
        return "".join(self._choice(PIN_ALPHABET) for _ in range(self.length))

    def is_valid(self, pin: str) -> bool:
        """True if `pin` has the shape of a pin this generator could have issued."""
        return len(pin) == self.length and all(ch in PIN_ALPHABET for ch in pin)

    def create(self, namespace: str) -> str:
        for _ in range(self.attempts):
            pin = self.candidate()
            key = make_key(namespace, pin)
            if self.store.exists(key):
                continue
            self.store.insert(key, Entry.fresh(pin))
            logger.debug("Issued pin %s", key)
            return pin
        logger.warning("No free pin in namespace %r after %d attempts", namespace, self.attempts)
        raise PinCapacityError()


def result_size(payload: Dict[str, Any]) -> int:
    try:
        encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise PayloadSerializationError(f"Payload could not be serialized: {e}") from e
    return len(encoded.encode("utf-8"))


class PinService:
    def __init__(self, store: PinStore, generator: PinGenerator, max_result_bytes: int = 3000):
        self.store = store
        self.generator = generator
        self.max_result_bytes = max_result_bytes

    def issue(self, namespace: str) -> PinResponse:
        return PinResponse(pin=self.generator.create(namespace), result=None)

    def poll(self, namespace: str, pin: str) -> PinResponse:
        """
        Deliver the result for (namespace, pin) if there is one.

        An unknown or expired pin is not an error: a brand-new pin is issued
        instead and the caller restarts the handoff with it. Malformed pins
        are treated the same way and never reach the store.
        """
        if not self.generator.is_valid(pin):
            return self.issue(namespace)
        entry = self.store.take_if_populated(make_key(namespace, pin))
        if entry is None:
            return self.issue(namespace)
        if entry.result is not None:
            logger.debug("Delivered result for %s", make_key(namespace, pin))
        return PinResponse(pin=pin, result=entry.result)

    def submit(self, namespace: str, pin: str, payload: Dict[str, Any]) -> None:
        key = make_key(namespace, pin)
        size = result_size(payload)
        if size > self.max_result_bytes:
            logger.info("Rejected %d byte result for %s", size, key)
            raise PayloadTooLargeError()
        if not self.generator.is_valid(pin):
            logger.info("Rejected result for malformed pin %s", key)
            raise PinNotFoundError()
        if not self.store.exists(key) or not self.store.update(key, Entry.fresh(pin, payload)):
            logger.info("Rejected result for unknown pin %s", key)
            raise PinNotFoundError()


def build_pin_service(store: PinStore, settings) -> PinService:
    generator = PinGenerator(store, length=settings.PIN_LENGTH, attempts=settings.PIN_ATTEMPTS)
    return PinService(store, generator, max_result_bytes=settings.MAX_RESULT_SIZE_BYTES)
