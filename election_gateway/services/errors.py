from __future__ import annotations

from typing import Dict, Optional


class GatewayError(Exception):
    """Base class for failures that map onto a JSON error response."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict:
        return {"error": self.message}


class MissingField(GatewayError):
    status_code = 400

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidField(GatewayError):
    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid value for {field}: {reason}")
        self.field = field


class InvalidWindow(GatewayError):
    status_code = 400

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid election window: {reason}")
        self.reason = reason


class NotFound(GatewayError):
    status_code = 404

    def __init__(self, entity: str, identifier: str) -> None:
        super().__init__(f"{entity} {identifier} not found")


class ContractCallFailed(GatewayError):
    """A read against the contract reverted or the node could not be reached."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"Failed to {operation}")
        self.cause = cause

    def to_dict(self) -> Dict:
        return {"error": self.message, "details": str(self.cause)}


class TransactionFailed(GatewayError):
    """Submission errored or the transaction never reached finality."""

    def __init__(
        self,
        operation: str,
        cause: Optional[Exception] = None,
        transaction_hash: Optional[str] = None,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message or f"Failed to {operation}", status_code)
        self.operation = operation
        self.cause = cause
        self.transaction_hash = transaction_hash

    def to_dict(self) -> Dict:
        body = {"error": self.message}
        if self.transaction_hash:
            body["transaction_hash"] = self.transaction_hash
        if self.cause is not None:
            body["details"] = str(self.cause)
        return body


class TransactionRejected(TransactionFailed):
    """The transaction was mined but the contract marked it unsuccessful."""

    def __init__(
        self, operation: str, transaction_hash: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(
            operation,
            transaction_hash=transaction_hash,
            message=f"Transaction rejected by the contract: {operation}",
            status_code=status_code,
        )


class ProtocolMismatch(TransactionFailed):
    """The receipt lacks data the gateway expects the contract to emit."""

    def __init__(self, operation: str, expected: str, transaction_hash: str) -> None:
        super().__init__(
            operation,
            transaction_hash=transaction_hash,
            message=f"Expected {expected} event missing from transaction receipt",
        )
        self.expected = expected
