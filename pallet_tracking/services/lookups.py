"""
Lookup helpers shared by the services.
"""

from django.core.exceptions import ValidationError as DjangoValidationError

from ..exceptions import ReferenceNotFoundException


def get_or_not_found(queryset, pk, entity_type: str):
    """
    Fetch one row by primary key or raise ReferenceNotFoundException.

    Malformed ids are reported as missing rather than as a database error.
    """
    try:
        instance = queryset.filter(pk=pk).first()
    except (ValueError, DjangoValidationError):
        instance = None

    if instance is None:
        raise ReferenceNotFoundException(entity_type, pk)
    return instance
