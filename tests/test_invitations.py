from datetime import date

import pytest

from instaclone.services.invitation_service import InvitationService
from instaclone.utils.academic_years import academic_years, current_academic_year_start, is_academic_year
from instaclone.utils.exceptions import DuplicateError


@pytest.fixture
def invitations():
    return InvitationService()


@pytest.fixture
def inviter(make_user):
    return make_user("founder@school.edu", name="Founder Person", school="Northside High")


def test_permit_allows_signup(invitations, inviter, auth):
    invitations.permit(inviter, "new@school.edu", "Northside High", "2024/25")
    assert invitations.is_invited("new@school.edu")
    user = auth.signup(email="new@school.edu", password="password123", name="New Kid")
    assert user.school == "Northside High"
    assert user.cohort_year == "2024/25"


def test_permit_twice_is_duplicate(invitations, inviter):
    invitations.permit(inviter, "new@school.edu", "Northside High")
    with pytest.raises(DuplicateError, match="already has permission"):
        invitations.permit(inviter, "NEW@school.edu", "Northside High")


@pytest.mark.parametrize(
    "email,school,cohort",
    [("", "Northside High", None), ("new@school.edu", "  ", None), ("new@school.edu", "Northside", "2024")],
)
def test_permit_validates_fields(invitations, inviter, email, school, cohort):
    with pytest.raises(ValueError):
        invitations.permit(inviter, email, school, cohort)


def test_list_permitted_by_inviter(invitations, inviter, make_user):
    other = make_user("other@school.edu", name="Other Person")
    invitations.permit(inviter, "a@school.edu", "Northside High")
    invitations.permit(inviter, "b@school.edu", "Southside High")
    invitations.permit(other, "c@school.edu", "Northside High")
    emails = [i.email for i in invitations.list_permitted_by(inviter)]
    assert sorted(emails) == ["a@school.edu", "b@school.edu"]


def test_schools_are_distinct_and_sorted(invitations, inviter):
    invitations.permit(inviter, "a@school.edu", "Southside High")
    invitations.permit(inviter, "b@school.edu", "Eastfield")
    assert invitations.schools() == ["Eastfield", "Northside High", "Southside High"]


def test_academic_years():
    assert current_academic_year_start(date(2024, 9, 1)) == 2024
    assert current_academic_year_start(date(2024, 8, 31)) == 2023
    years = academic_years(today=date(2024, 10, 1), limit=3)
    assert years == ["2024/25", "2023/24", "2022/23"]
    assert academic_years(start_year=1980, end_year=1981, limit=10) == ["1981/82", "1980/81"]


@pytest.mark.parametrize(
    "value,expected",
    [("2024/25", True), ("1999/00", True), ("2024/26", False), ("2024-25", False), ("", False)],
)
def test_is_academic_year(value, expected):
    assert is_academic_year(value) is expected
