"""
Concurrent write tests.

These run against a file-backed SQLite database, where each session holds
its own connection, so racing requests really interleave.
"""
import pytest
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from sqlalchemy import func, select

from retainerkit.database.models import Invoice, Workspace, WorkspaceMember, WorkspaceRole
from retainerkit.errors import ConflictError
from retainerkit.services import billing
from retainerkit.services.billing import generate_invoice
from retainerkit.services.workspace import resolve_active_workspace

from .test_base import DatabaseTestUtilities as utils

USERS = 10
REQUESTS_PER_USER = 2
GENERATORS = 4


def _run_together(count, target):
    """Call ``target(index)`` on ``count`` threads released at once; exceptions are returned, not raised."""
    barrier = threading.Barrier(count, timeout=10)

    def run(index):
        barrier.wait()
        try:
            return target(index)
        except Exception as exc:
            return exc

    with ThreadPoolExecutor(max_workers=count) as executor:
        return list(executor.map(run, range(count)))


@pytest.fixture
def file_contract(file_database):
    """Contract with one January work log in the file-backed database."""
    with file_database.session() as db:
        owner = utils.create_test_user(db, "owner@example.com", "Olivia")
        workspace = utils.create_test_workspace(db, owner)
        client = utils.create_test_client(db, workspace)
        contract = utils.create_test_contract(db, client, hourly_rate_cents=10000)
        utils.create_test_work_log(db, contract, date(2024, 1, 10), 60)
        return {"workspace_id": workspace.id, "contract_id": contract.id}


class TestConcurrentWorkspaceProvisioning:

    def test_first_requests_share_one_owner_workspace(self, file_database):
        with file_database.session() as db:
            user_ids = [
                utils.create_test_user(db, f"user{i}@example.com", f"User {i}").id for i in range(USERS)
            ]

        def resolve(user_id):
            with file_database.session() as db:
                return resolve_active_workspace(db, user_id)

        for user_id in user_ids:
            results = _run_together(REQUESTS_PER_USER, lambda _: resolve(user_id))

            assert [r for r in results if isinstance(r, Exception)] == []
            assert len({r.id for r in results}) == 1
            assert all(r.role is WorkspaceRole.OWNER for r in results)

        with file_database.session() as db:
            assert db.scalar(select(func.count(Workspace.id))) == USERS
            assert db.scalar(select(func.count(WorkspaceMember.id))) == USERS
            assert db.scalar(
                select(func.count(WorkspaceMember.id)).where(WorkspaceMember.role == WorkspaceRole.OWNER)
            ) == USERS


class TestConcurrentInvoiceGeneration:

    def test_concurrent_overlapping_generation_stores_one(self, file_database, file_contract):
        workspace_id, contract_id = file_contract["workspace_id"], file_contract["contract_id"]

        def generate(index):
            with file_database.session() as db:
                return generate_invoice(db, workspace_id, contract_id, date(2024, 1, 1 + index), date(2024, 1, 31))

        results = _run_together(GENERATORS, generate)

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(results) - len(errors) == 1
        assert len(errors) == GENERATORS - 1
        assert all(isinstance(e, ConflictError) for e in errors)
        with file_database.session() as db:
            assert db.scalar(select(func.count(Invoice.id))) == 1

    def test_write_landing_after_overlap_check_is_rejected(self, file_database, file_contract, monkeypatch):
        workspace_id, contract_id = file_contract["workspace_id"], file_contract["contract_id"]
        check_overlap = billing._ensure_no_overlap
        interleaved = []

        def check_then_let_other_writer_in(db, *args, **kwargs):
            check_overlap(db, *args, **kwargs)
            if not interleaved:
                interleaved.append(True)
                with file_database.session() as other:
                    generate_invoice(other, workspace_id, contract_id, date(2024, 1, 15), date(2024, 2, 15))

        monkeypatch.setattr(billing, "_ensure_no_overlap", check_then_let_other_writer_in)

        with file_database.session() as db:
            with pytest.raises(ConflictError) as exc_info:
                generate_invoice(db, workspace_id, contract_id, date(2024, 1, 1), date(2024, 1, 31))

        assert exc_info.value.message == "Overlapping invoice exists (2024-01-15 to 2024-02-15)."
        with file_database.session() as db:
            periods = db.execute(select(Invoice.period_start, Invoice.period_end)).all()
        assert [tuple(p) for p in periods] == [(date(2024, 1, 15), date(2024, 2, 15))]
