"""Tests for explicit async job polling."""

import pytest

from cloudstack_sdk import (
    AsyncJobFailedError,
    AsyncJobTimeoutError,
    JobPollPolicy,
    ProtocolError,
    RemoteError,
    TransportError,
)
from cloudstack_sdk.jobs import wait_for_job

FAST = JobPollPolicy(max_attempts=5, interval_seconds=0)


class ScriptedJobs:
    """Returns queued queryAsyncJobResult payloads (or raises queued errors)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.queries = []

    async def query_async_job_result(self, job_id):
        self.queries.append(job_id)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def pending(job_id="job-1"):
    return {"jobid": job_id, "jobstatus": 0}


class TestWaitForJob:
    async def test_success_after_pending(self):
        jobs = ScriptedJobs(
            pending(),
            pending(),
            {"jobid": "job-1", "jobstatus": 1, "jobresultcode": 0,
             "jobresult": {"virtualmachine": {"id": "vm-1", "state": "Running"}}},
        )

        result = await wait_for_job(jobs, "job-1", FAST)

        assert result == {"virtualmachine": {"id": "vm-1", "state": "Running"}}
        assert jobs.queries == ["job-1", "job-1", "job-1"]

    async def test_failure_uses_errortext(self):
        jobs = ScriptedJobs(
            {"jobid": "job-1", "jobstatus": 2, "jobresultcode": 530,
             "jobresult": {"errorcode": 530, "errortext": "Insufficient capacity"}},
        )

        with pytest.raises(AsyncJobFailedError) as exc_info:
            await wait_for_job(jobs, "job-1", FAST)

        error = exc_info.value
        assert isinstance(error, RemoteError)
        assert error.message == "CloudStack job failed: Insufficient capacity"
        assert error.upstream_code == 530
        assert error.job_id == "job-1"

    async def test_failure_falls_back_to_errorcode(self):
        jobs = ScriptedJobs({"jobstatus": 2, "jobresult": {"errorcode": 431}})

        with pytest.raises(AsyncJobFailedError, match="431"):
            await wait_for_job(jobs, "job-1", FAST)

    async def test_failure_without_result(self):
        jobs = ScriptedJobs({"jobstatus": 2})

        with pytest.raises(AsyncJobFailedError, match="Job failed"):
            await wait_for_job(jobs, "job-1", FAST)

    async def test_timeout_after_budget(self):
        jobs = ScriptedJobs(*[pending() for _ in range(3)])

        with pytest.raises(AsyncJobTimeoutError) as exc_info:
            await wait_for_job(jobs, "job-1", JobPollPolicy(max_attempts=3, interval_seconds=0))

        assert exc_info.value.kind == "timeout"
        assert exc_info.value.attempts == 3
        assert len(jobs.queries) == 3

    async def test_transport_error_not_swallowed(self):
        jobs = ScriptedJobs(pending(), TransportError("Connection error: refused"))

        with pytest.raises(TransportError):
            await wait_for_job(jobs, "job-1", FAST)

        assert len(jobs.queries) == 2

    async def test_malformed_payload(self):
        jobs = ScriptedJobs({"jobid": "job-1"})

        with pytest.raises(ProtocolError):
            await wait_for_job(jobs, "job-1", FAST)

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            JobPollPolicy(max_attempts=0)


class TestClientWaitForJob:
    async def test_wait_for_job_through_client(self, client, cloud):
        cloud.respond(
            "queryAsyncJobResult",
            {"queryasyncjobresultresponse": {"jobid": "job-9", "jobstatus": 1,
                                             "jobresult": {"volume": {"id": "vol-1"}}}},
        )

        result = await client.wait_for_job("job-9", FAST)

        assert result == {"volume": {"id": "vol-1"}}
        assert cloud.last_params["jobid"] == "job-9"
