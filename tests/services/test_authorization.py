import pytest

from job_intake.core.exceptions import ForbiddenError
from job_intake.models.actor import Actor, Role
from job_intake.models.application import Application, Attachment
from job_intake.models.job import Job
from job_intake.services.authorization import AuthorizationGate, owns_job

JOB = Job(id="10", posted_by="5", title="Backend Engineer")
ORPHAN_JOB = Job(id="12", posted_by=None)

APPLICATION = Application(
    id="64b000000000000000000001",
    job_id="10",
    applicant_id="1",
    attachment=Attachment(
        blob_id="64b0000000000000000000ff",
        filename="cv.pdf",
        content_type="application/pdf",
        size_bytes=10,
    ),
)

APPLICANT = Actor(id="1", role=Role.JOBSEEKER)
OTHER_JOBSEEKER = Actor(id="2", role=Role.JOBSEEKER)
OWNER = Actor(id="5", role=Role.RECRUITER)
OTHER_RECRUITER = Actor(id="6", role=Role.RECRUITER)
ADMIN = Actor(id="99", role=Role.ADMIN)

gate = AuthorizationGate()


def test_owns_job_compares_ids_as_strings():
    assert owns_job(OWNER, JOB)
    assert owns_job(Actor(id="5", role=Role.RECRUITER), Job(id="10", posted_by="5"))
    assert not owns_job(OTHER_RECRUITER, JOB)


def test_nobody_owns_a_missing_job():
    assert not owns_job(OWNER, None)
    assert not owns_job(OWNER, ORPHAN_JOB)


def test_only_jobseekers_submit():
    gate.ensure_can_submit(APPLICANT)
    for actor in (OWNER, ADMIN):
        with pytest.raises(ForbiddenError):
            gate.ensure_can_submit(actor)


def test_only_jobseekers_view_own():
    gate.ensure_can_view_own(APPLICANT)
    with pytest.raises(ForbiddenError):
        gate.ensure_can_view_own(OWNER)


@pytest.mark.parametrize(
    "actor, allowed",
    [
        (OWNER, True),
        (ADMIN, True),
        (OTHER_RECRUITER, False),
        (APPLICANT, False),
    ],
)
def test_view_job_applications(actor, allowed):
    if allowed:
        gate.ensure_can_view_job_applications(actor, JOB)
    else:
        with pytest.raises(ForbiddenError):
            gate.ensure_can_view_job_applications(actor, JOB)


def test_only_admin_views_all():
    gate.ensure_can_view_all(ADMIN)
    for actor in (APPLICANT, OWNER):
        with pytest.raises(ForbiddenError) as exc_info:
            gate.ensure_can_view_all(actor)
        assert exc_info.value.status_code == 403


@pytest.mark.parametrize(
    "actor, job, allowed",
    [
        (APPLICANT, JOB, True),
        (OWNER, JOB, True),
        (ADMIN, JOB, True),
        (ADMIN, None, True),
        (OTHER_JOBSEEKER, JOB, False),
        (OTHER_RECRUITER, JOB, False),
        (OWNER, None, False),
        (OWNER, ORPHAN_JOB, False),
    ],
)
def test_download_resume(actor, job, allowed):
    if allowed:
        gate.ensure_can_download(actor, APPLICATION, job)
    else:
        with pytest.raises(ForbiddenError):
            gate.ensure_can_download(actor, APPLICATION, job)


@pytest.mark.parametrize(
    "actor, job, allowed",
    [
        (OWNER, JOB, True),
        (ADMIN, JOB, True),
        (ADMIN, None, True),
        (APPLICANT, JOB, False),
        (OTHER_RECRUITER, JOB, False),
        (OWNER, None, False),
    ],
)
def test_change_status(actor, job, allowed):
    if allowed:
        gate.ensure_can_change_status(actor, APPLICATION, job)
    else:
        with pytest.raises(ForbiddenError):
            gate.ensure_can_change_status(actor, APPLICATION, job)


def test_recruiter_role_alone_is_not_ownership():
    """A recruiter whose id matches the applicant's still needs to own the job."""
    recruiter_with_applicant_id = Actor(id="1", role=Role.RECRUITER)

    with pytest.raises(ForbiddenError):
        gate.ensure_can_download(recruiter_with_applicant_id, APPLICATION, JOB)
