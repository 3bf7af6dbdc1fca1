"""Billing submission client."""

import logging
from typing import Any, Dict, Optional

from .base import ApiClient
from ..errors import ApiError, BillingSubmissionFailed
from ..models.billing import ConsultationBill
from ..models.transcription import SuggestionSet, Transcript

logger = logging.getLogger(__name__)


def build_billing_payload(appointment_id: str,
                          patient_id: str,
                          bill: ConsultationBill,
                          transcript: Optional[Transcript] = None,
                          suggestions: Optional[SuggestionSet] = None) -> Dict[str, Any]:
    """Wire format expected by the billing endpoint."""
    return {
        "appointmentId": appointment_id,
        "patientId": patient_id,
        "consultationFee": bill.base_fee,
        "extraFees": [item.to_dict() for item in bill.line_items],
        "totalFee": bill.total,
        "transcript": transcript.text if transcript and transcript.text else None,
        "aiSuggestions": suggestions.to_dict() if suggestions else None,
    }


class BillingClient(ApiClient):
    """Submits a consultation bill for an appointment."""

    service_name = "Billing"

    async def submit(self,
                     appointment_id: str,
                     patient_id: str,
                     bill: ConsultationBill,
                     auth_token: str,
                     transcript: Optional[Transcript] = None,
                     suggestions: Optional[SuggestionSet] = None) -> Optional[str]:
        """Submit billing once.

        Returns:
            Identifier of the stored billing record, if the server returned one

        Raises:
            BillingSubmissionFailed: On any network or service error
        """
        payload = build_billing_payload(appointment_id, patient_id, bill, transcript, suggestions)
        path = f"/api/appointments/{appointment_id}/billing"

        logger.info(f"Submitting billing for appointment {appointment_id}: total={bill.total:.2f}")
        try:
            response = await self._post(path, auth_token, json=payload)
        except ApiError as e:
            logger.error(f"Billing submission error: {e.reason}")
            raise BillingSubmissionFailed(e.reason or "Failed to submit billing", status=e.status) from e

        record_id = response.get("_id") or response.get("id") or response.get("billingId")
        return str(record_id) if record_id is not None else None
