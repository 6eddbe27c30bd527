"""
Custom exceptions for the pallet tracking module.

Every domain rule violation raises a BusinessException subclass. The API
layer turns ``code``, ``message`` and ``details`` into the error payload and
uses ``status_code`` as the HTTP status.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ReferenceNotFoundException(BusinessException):
    """Raised when a referenced contract, location, SKU, pallet or manifest is missing."""

    status_code = 404

    def __init__(self, entity_type: str, entity_id, code: str = "REFERENCE_NOT_FOUND"):
        message = f"{entity_type} {entity_id} not found"
        super().__init__(message, code, {
            "entity_type": entity_type,
            "entity_id": str(entity_id),
        })


class NotFoundException(ReferenceNotFoundException):
    """Raised when an identifier code is unknown to the pool."""

    def __init__(self, code_value: str):
        super().__init__("QrTag", code_value, "NOT_FOUND")


class InvalidStateException(BusinessException):
    """Raised when an operation is not valid for the current lifecycle state."""

    status_code = 409

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "INVALID_STATE"):
        super().__init__(message, code, details)


class InvalidTransitionException(InvalidStateException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "pallet"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        }, "INVALID_TRANSITION")


class PalletNotSealedException(InvalidStateException):
    """Raised when a pallet must be sealed for the operation."""

    def __init__(self, pallet_id, current_status: str):
        super().__init__(
            f"Only sealed pallets can be added to a manifest (pallet {pallet_id} is {current_status})",
            {"pallet_id": str(pallet_id), "current_status": current_status},
            "PALLET_NOT_SEALED",
        )


class EmptyManifestException(InvalidStateException):
    """Raised when loading a manifest that has no pallets."""

    def __init__(self, manifest_code: str):
        super().__init__(
            f"Cannot load manifest {manifest_code} without pallets",
            {"manifest_code": manifest_code},
            "EMPTY_MANIFEST",
        )


class ConflictException(BusinessException):
    """Raised when a concurrent mutation lost a race or a binding is duplicated."""

    status_code = 409

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "CONFLICT"):
        super().__init__(message, code, details)


class AlreadyBoundException(ConflictException):
    """Raised when binding an identifier that is not free."""

    def __init__(self, code_value: str):
        super().__init__(
            f"QR tag {code_value} is already bound to a pallet",
            {"qr_code": code_value},
            "ALREADY_BOUND",
        )


class PalletAlreadyAttachedException(ConflictException):
    """Raised when a pallet already belongs to a manifest."""

    def __init__(self, pallet_id, manifest_code: str):
        super().__init__(
            f"Pallet {pallet_id} is already in manifest {manifest_code}",
            {"pallet_id": str(pallet_id), "manifest_code": manifest_code},
            "PALLET_ALREADY_ATTACHED",
        )


class PoolExhaustedException(ConflictException):
    """Raised when no free identifier is left to allocate."""

    def __init__(self):
        super().__init__("No free QR tags available", {}, "POOL_EXHAUSTED")


class AlreadyExistsException(BusinessException):
    """Raised on uniqueness violations."""

    status_code = 409

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "ALREADY_EXISTS"):
        super().__init__(message, code, details)


class DuplicateSkuException(AlreadyExistsException):
    """Raised when a SKU is already on the pallet."""

    def __init__(self, sku_code: str):
        super().__init__(
            f"SKU {sku_code} is already in this pallet",
            {"sku": sku_code},
            "DUPLICATE_SKU",
        )


class DuplicateCodeException(AlreadyExistsException):
    """Raised when provisioning would create identifier codes that already exist."""

    def __init__(self, codes):
        codes = sorted(codes)
        super().__init__(
            f"QR codes already exist: {', '.join(codes[:10])}",
            {"existing_codes": codes},
            "DUPLICATE_CODE",
        )


class AlreadyReceivedException(AlreadyExistsException):
    """Raised when a receipt already exists for the pallet."""

    def __init__(self, pallet_id):
        super().__init__(
            f"Pallet {pallet_id} is already received",
            {"pallet_id": str(pallet_id)},
            "ALREADY_RECEIVED",
        )


class ReviewRequiredException(BusinessException):
    """Raised when sealing a low-confidence pallet without a confirmed review."""

    status_code = 422

    def __init__(self, pallet_id, confidence=None):
        super().__init__(
            "Manual review confirmation required before sealing",
            "REVIEW_REQUIRED",
            {"pallet_id": str(pallet_id), "confidence": confidence},
        )


class ReasonRequiredException(BusinessException):
    """Raised when a non-ok comparison is left without a reason."""

    status_code = 422

    def __init__(self, message: str = "A reason is required for alert and critical differences",
                 details: Dict[str, Any] = None):
        super().__init__(message, "REASON_REQUIRED", details)


class LimitExceededException(BusinessException):
    """Raised when a configured cap is exceeded."""

    status_code = 422

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "LIMIT_EXCEEDED"):
        super().__init__(message, code, details)


class ItemLimitExceededException(LimitExceededException):
    """Raised when a pallet would carry more SKUs than allowed."""

    def __init__(self, limit: int):
        super().__init__(
            f"Pallet cannot have more than {limit} SKUs",
            {"max_skus_per_pallet": limit},
            "ITEM_LIMIT_EXCEEDED",
        )


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code, field_errors or {})


class ContractMismatchException(ValidationException):
    """Raised when a pallet's contract differs from the manifest's."""

    def __init__(self, pallet_contract: str, manifest_contract: str):
        super().__init__(
            "Pallet contract does not match manifest contract",
            {"pallet_contract": pallet_contract, "manifest_contract": manifest_contract},
            "CONTRACT_MISMATCH",
        )


class LocationMismatchException(ValidationException):
    """Raised when a pallet's origin differs from the manifest's origin."""

    def __init__(self, pallet_location: str, manifest_location: str):
        super().__init__(
            "Pallet origin location does not match manifest origin location",
            {"pallet_location": pallet_location, "manifest_location": manifest_location},
            "LOCATION_MISMATCH",
        )


class ImmutableRecordException(BusinessException):
    """Raised when an append-only record would be changed or removed."""

    def __init__(self, entity_type: str):
        super().__init__(f"{entity_type} records are immutable", "IMMUTABLE_RECORD", {
            "entity_type": entity_type,
        })
