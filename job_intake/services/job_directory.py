# job_intake/services/job_directory.py
from bson import ObjectId

from job_intake.core.exceptions import JobNotFoundError
from job_intake.models.job import Job


def id_query(value: str):
    """Match ObjectId-shaped ids as ObjectId, anything else as stored."""
    return ObjectId(value) if ObjectId.is_valid(value) else value


class JobDirectory:
    """
    Read-only access to job postings owned by the job service.
    """

    PROJECTION = {"postedBy": 1, "posted_by": 1, "title": 1, "company": 1, "location": 1}

    def __init__(self, collection):
        self._collection = collection

    async def find_job(self, job_id: str) -> Job | None:
        """
        Look up a job posting.

        Args:
            job_id: The job ID.

        Returns:
            The job, or None if it does not exist.
        """
        if not job_id:
            return None
        doc = await self._collection.find_one({"_id": id_query(job_id)}, self.PROJECTION)
        if not doc:
            return None
        posted_by = doc.get("postedBy", doc.get("posted_by"))
        return Job(
            id=str(doc["_id"]),
            posted_by=str(posted_by) if posted_by is not None else None,
            title=doc.get("title"),
            company=doc.get("company"),
            location=doc.get("location"),
        )

    async def get_job(self, job_id: str) -> Job:
        """
        Look up a job posting that must exist.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        job = await self.find_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job
