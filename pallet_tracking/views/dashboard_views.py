"""
Dashboard views for pallet tracking.
"""

import uuid

from django.utils.dateparse import parse_datetime
from rest_framework.views import APIView

from ..exceptions import ValidationException
from ..permissions import IsWarehouseStaff
from ..services import ReportingService
from .base import BusinessErrorMixin, success_response


class KpiDashboardView(BusinessErrorMixin, APIView):
    """KPI figures, optionally bounded by ?start=&end= and filtered by ?contract_id=."""

    permission_classes = [IsWarehouseStaff]

    def get(self, request):
        start = self._parse_bound(request, 'start')
        end = self._parse_bound(request, 'end')
        contract_id = self._parse_contract(request)

        return success_response(ReportingService().kpis(start=start, end=end, contract_id=contract_id))

    @staticmethod
    def _parse_contract(request):
        raw = request.query_params.get('contract_id')
        if not raw:
            return None
        try:
            return uuid.UUID(raw)
        except ValueError:
            raise ValidationException("Invalid contract_id", {'contract_id': raw})

    @staticmethod
    def _parse_bound(request, name):
        raw = request.query_params.get(name)
        if not raw:
            return None
        try:
            value = parse_datetime(raw)
        except ValueError:
            value = None
        if value is None:
            raise ValidationException(f"Invalid {name} datetime", {name: raw})
        return value
