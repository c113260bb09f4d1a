"""Invite allow-list: who may sign up, and which schools exist"""

from __future__ import annotations

from typing import List, Optional

from ..models.user import Invitation, User
from ..stores.invitations import InvitationStore
from ..utils.academic_years import is_academic_year
from ..utils.exceptions import DuplicateError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InvitationService:
    def __init__(self, invitations: Optional[InvitationStore] = None):
        self.invitations = invitations or InvitationStore()

    def permit(self, inviter: User, email: str, school: str, cohort_year: Optional[str] = None) -> Invitation:
        """
        Allow-list email on behalf of inviter.

        Raises ValueError for missing fields or a malformed cohort year and
        DuplicateError if the email is already allow-listed.
        """
        email = (email or "").strip()
        school = (school or "").strip()
        if not email or not school:
            raise ValueError("Missing required fields")
        if cohort_year and not is_academic_year(cohort_year):
            raise ValueError("cohort_year must look like YYYY/YY")

        invitation = Invitation(
            email=email,
            school=school,
            cohort_year=cohort_year or None,
            referring_username=inviter.username,
        )
        try:
            self.invitations.create(invitation)
        except DuplicateError:
            logger.info("Invitation already exists", email=email, inviter=inviter.username)
            raise
        logger.info("Invitation created", email=email, school=school, inviter=inviter.username)
        return invitation

    def list_permitted_by(self, inviter: User) -> List[Invitation]:
        return self.invitations.list_by_referrer(inviter.username)

    def schools(self) -> List[str]:
        return self.invitations.distinct_schools()

    def is_invited(self, email: str) -> bool:
        return self.invitations.find_by_email(email) is not None
