"""Identity gate: decides whether a caller may submit to a fund at all."""

import logging
from typing import Optional

from grantrelief.models.identity import FundIdentity

logger = logging.getLogger(__name__)


class SubmissionNotAllowedError(Exception):
    """The applicant's fund identity does not permit a new application."""


def ensure_can_apply(identity: Optional[FundIdentity], fund_code: str) -> None:
    """
    Raise unless ``identity`` may submit an application to ``fund_code``.

    Requires a passed class verification, an Eligible status, and an
    identity that belongs to the fund being applied to.

    Raises:
        SubmissionNotAllowedError: With a user-presentable message
    """
    if identity is None:
        raise SubmissionNotAllowedError("No fund identity found for this applicant.")

    if identity.fund_code.upper() != (fund_code or "").upper():
        logger.info(
            "Gate rejected %s: identity fund %s does not match %s",
            identity.applicant_id,
            identity.fund_code,
            fund_code,
        )
        raise SubmissionNotAllowedError(
            f"Your active identity is not registered with fund {fund_code}."
        )

    if identity.class_verification_status != "passed":
        raise SubmissionNotAllowedError(
            "Class verification must be completed before applying."
        )

    if identity.eligibility_status != "Eligible":
        raise SubmissionNotAllowedError(
            f"Eligibility status is '{identity.eligibility_status}'; "
            "only eligible applicants may apply."
        )
