"""Tests for job construction and argument validation."""

import pytest

from flowpool.errors import ArgumentError
from flowpool.jobs import JobKind, new_job, validate_args


class TestValidateArgs:
    def test_valid_read_jobs(self):
        validate_args(JobKind.GET_ACCOUNT_AT_LATEST_BLOCK, ("f8d6e0586b0a20c7",))
        validate_args(JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT, ("f8d6e0586b0a20c7", 10))
        validate_args(JobKind.GET_LATEST_BLOCK, (True,))
        validate_args(JobKind.GET_EVENTS_FOR_HEIGHT_RANGE, ("A.1.C.E", 1, 5))

    def test_arity_mismatch(self):
        with pytest.raises(ArgumentError, match="incorrect number of arguments"):
            validate_args(JobKind.GET_ACCOUNT_AT_LATEST_BLOCK, ())
        with pytest.raises(ArgumentError, match="incorrect number of arguments"):
            validate_args(JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT, ("f8d6e0586b0a20c7",))

    def test_type_mismatch(self):
        with pytest.raises(ArgumentError, match="invalid argument 0"):
            validate_args(JobKind.GET_LATEST_BLOCK, ("yes",))
        with pytest.raises(ArgumentError, match="invalid argument 1"):
            validate_args(JobKind.GET_ACCOUNT_AT_BLOCK_HEIGHT, ("f8d6e0586b0a20c7", -1))

    def test_bool_is_not_a_height(self):
        with pytest.raises(ArgumentError):
            validate_args(JobKind.GET_BLOCK_BY_HEIGHT, (True,))

    def test_inverted_height_range(self):
        with pytest.raises(ArgumentError, match="above end height"):
            validate_args(JobKind.GET_EVENTS_FOR_HEIGHT_RANGE, ("A.1.C.E", 5, 1))


class TestNewJob:
    def test_builds_pending_job(self):
        job = new_job(JobKind.GET_TRANSACTION, "ab" * 32)
        assert job.args == ("ab" * 32,)
        assert not job.future.done()

    def test_ids_increase(self):
        a = new_job(JobKind.GET_LATEST_BLOCK, False)
        b = new_job(JobKind.GET_LATEST_BLOCK, False)
        assert b.id > a.id

    def test_transaction_requires_request(self):
        with pytest.raises(ArgumentError, match="TransactionRequest"):
            new_job(JobKind.TRANSACTION)

    def test_script_shape(self):
        new_job(JobKind.SCRIPT, b"pub fun main() {}", ())
        with pytest.raises(ArgumentError, match="script job"):
            new_job(JobKind.SCRIPT, "not bytes", ())

    def test_job_is_immutable(self):
        job = new_job(JobKind.GET_LATEST_BLOCK, False)
        with pytest.raises(AttributeError):
            job.args = (True,)
