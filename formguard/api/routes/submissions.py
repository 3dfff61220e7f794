from typing import Annotated

from fastapi import APIRouter, Depends, Request

from formguard.core.guard import enforce_abuse_gate, get_abuse_gate
from formguard.schemas.submission import ScreenSubmissionRequest, ScreenSubmissionResponse
from formguard.services.abuse_gate import AbuseGate

router = APIRouter(tags=["Submissions"])


@router.post(
    "/submissions/screen",
    response_model=ScreenSubmissionResponse,
    responses={
        400: {"description": "Submission judged to be automated abuse."},
        429: {"description": "Client exceeded its submission budget."},
    },
)
def screen_submission(
    payload: ScreenSubmissionRequest,
    request: Request,
    gate: Annotated[AbuseGate, Depends(get_abuse_gate)],
) -> ScreenSubmissionResponse:
    """Screen a public form submission before the caller stores it.

    Consumes one unit of the client's submission budget, then scores the
    payload with the honeypot, timing and content detectors.

    Args:
        payload: Form fields and the time the form was rendered.
        request: Incoming request (used to derive the client address).
        gate: Abuse gate owned by the application.

    Returns:
        ScreenSubmissionResponse: Decision for an admitted submission.

    Raises:
        RateLimitedAppError: 429 when the client is over budget.
        SpamRejectedAppError: 400 when the submission is judged spam.
    """
    decision = enforce_abuse_gate(
        request,
        gate,
        fields=payload.fields,
        form_rendered_at=payload.form_rendered_at,
        guard=request.app.state.guard,
    )
    suspicious = decision.verdict is not None and gate.policy.is_suspicious(decision.verdict)
    return ScreenSubmissionResponse.from_decision(decision, suspicious=suspicious)
