"""
Workflow rules for pallet tracking.

Manages allowed state transitions and applies them with a compare-and-set
update so a concurrent writer cannot be silently overwritten.
"""

from django.utils import timezone

from ..exceptions import ConflictException, InvalidTransitionException
from ..models import Manifest, ManifestStatus, Pallet, PalletStatus


class StatusWorkflow:
    """Base class for transition tables keyed by current status."""

    ENTITY_TYPE = ''
    ALLOWED_TRANSITIONS = {}

    @classmethod
    def validate_transition(cls, instance, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            instance: Model instance with a ``status`` field
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = instance.status
        allowed_transitions = cls.ALLOWED_TRANSITIONS.get(current_status, [])

        if new_status not in allowed_transitions:
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=cls.ENTITY_TYPE
            )


class PalletWorkflow(StatusWorkflow):
    """Workflow rules for Pallet state transitions."""

    ENTITY_TYPE = 'Pallet'
    ALLOWED_TRANSITIONS = {
        PalletStatus.OPEN: [PalletStatus.SEALED],
        PalletStatus.SEALED: [PalletStatus.IN_TRANSIT],
        PalletStatus.IN_TRANSIT: [PalletStatus.RECEIVED],
        PalletStatus.RECEIVED: [PalletStatus.FINALIZED],
        PalletStatus.FINALIZED: [],  # Final state
    }


class ManifestWorkflow(StatusWorkflow):
    """Workflow rules for Manifest state transitions."""

    ENTITY_TYPE = 'Manifest'
    ALLOWED_TRANSITIONS = {
        ManifestStatus.DRAFT: [ManifestStatus.LOADED],
        ManifestStatus.LOADED: [ManifestStatus.IN_TRANSIT],
        ManifestStatus.IN_TRANSIT: [ManifestStatus.DELIVERED],
        ManifestStatus.DELIVERED: [],  # Final state
    }


def _compare_and_set(instance, new_status: str, changes) -> None:
    expected_status = instance.status
    values = dict(changes)
    values['updated_at'] = timezone.now()

    updated = type(instance).objects.filter(
        pk=instance.pk, status=expected_status
    ).update(status=new_status, **values)

    if updated != 1:
        raise ConflictException(
            f"{type(instance).__name__} {instance.pk} was modified concurrently",
            {"expected_status": expected_status, "attempted_status": new_status}
        )

    instance.status = new_status
    for field, value in values.items():
        setattr(instance, field, value)


def transition_pallet(pallet: Pallet, new_status: str, **changes) -> Pallet:
    """
    Validate and apply a pallet transition.

    Args:
        pallet: Pallet instance as read inside the caller's transaction
        new_status: Target status
        **changes: Extra fields written together with the status

    Raises:
        InvalidTransitionException: If transition is not allowed
        ConflictException: If the stored status no longer matches
    """
    PalletWorkflow.validate_transition(pallet, new_status)
    _compare_and_set(pallet, new_status, changes)
    return pallet


def transition_manifest(manifest: Manifest, new_status: str, **changes) -> Manifest:
    """Validate and apply a manifest transition (see transition_pallet)."""
    ManifestWorkflow.validate_transition(manifest, new_status)
    _compare_and_set(manifest, new_status, changes)
    return manifest
