from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.contentgen.generation.generation_models import Asset, GenerationJob, JobStatus


def make_job(job_id: str, *, user_id: str = "user-1", status: JobStatus = JobStatus.PROCESSING, created_at=None):
    return GenerationJob(
        job_id=job_id,
        model_id="mj-v6",
        user_id=user_id,
        prompt="a lighthouse",
        status=status,
        provider_job_id=f"task-{job_id}",
        provider_metadata={"provider": "apiframe"},
        created_at=created_at,
    )


def test_create_and_get_for_owner(job_repo) -> None:
    job_repo.create(make_job("job-1"))

    stored = job_repo.get_for_user("job-1", "user-1")

    assert stored is not None
    assert stored.status is JobStatus.PROCESSING
    assert stored.provider_metadata == {"provider": "apiframe"}
    assert stored.result_assets is None
    assert stored.completed_at is None


def test_get_for_other_user_returns_none(job_repo) -> None:
    job_repo.create(make_job("job-1"))

    assert job_repo.get_for_user("job-1", "user-2") is None
    assert job_repo.get_for_user("missing", "user-1") is None


def test_terminal_job_gets_completed_at_on_create(job_repo) -> None:
    created = job_repo.create(make_job("job-1", status=JobStatus.COMPLETED))

    assert created.completed_at is not None


def test_update_status(job_repo) -> None:
    job_repo.create(make_job("job-1"))
    finished = datetime(2026, 1, 1, 12, 0, 0)

    updated = job_repo.update_status(
        "job-1",
        status=JobStatus.FAILED,
        progress=0,
        error_message="provider failed",
        completed_at=finished,
    )

    assert updated.status is JobStatus.FAILED
    assert updated.error_message == "provider failed"
    assert updated.completed_at == finished


def test_update_status_leaves_terminal_jobs_alone(job_repo) -> None:
    job_repo.create(make_job("job-1"))
    job_repo.update_status("job-1", status=JobStatus.CANCELLED, progress=40, completed_at=datetime(2026, 1, 1))

    returned = job_repo.update_status(
        "job-1",
        status=JobStatus.COMPLETED,
        progress=100,
        completed_at=datetime(2026, 1, 2),
    )

    assert returned.status is JobStatus.CANCELLED
    assert returned.progress == 40
    assert returned.completed_at == datetime(2026, 1, 1)
    assert job_repo.get_for_user("job-1", "user-1").status is JobStatus.CANCELLED


def test_update_status_of_missing_job_raises(job_repo) -> None:
    with pytest.raises(KeyError):
        job_repo.update_status("missing", status=JobStatus.PROCESSING, progress=10)


def test_result_assets_are_written_once(job_repo) -> None:
    job_repo.create(make_job("job-1", status=JobStatus.COMPLETED))

    first = job_repo.set_result_assets("job-1", [Asset(url="https://cdn.test/1.png")])
    second = job_repo.set_result_assets("job-1", [Asset(url="https://cdn.test/other.png")])

    assert [asset.url for asset in first.result_assets] == ["https://cdn.test/1.png"]
    assert [asset.url for asset in second.result_assets] == ["https://cdn.test/1.png"]


def test_list_for_user_is_paged_newest_first(job_repo) -> None:
    base = datetime(2026, 1, 1)
    for index in range(5):
        job_repo.create(make_job(f"job-{index}", created_at=base + timedelta(minutes=index)))
    job_repo.create(make_job("job-x", user_id="user-2", created_at=base))

    jobs, total = job_repo.list_for_user("user-1", limit=2, offset=1)

    assert total == 5
    assert [job.job_id for job in jobs] == ["job-3", "job-2"]


def test_list_for_user_filters_by_status(job_repo) -> None:
    job_repo.create(make_job("job-1"))
    job_repo.create(make_job("job-2", status=JobStatus.COMPLETED))

    jobs, total = job_repo.list_for_user("user-1", status=JobStatus.COMPLETED)

    assert total == 1
    assert jobs[0].job_id == "job-2"
