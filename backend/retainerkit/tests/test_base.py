"""
Base test utilities and common patterns for backend testing.

Provides base test classes, assertion helpers, and database seeding
utilities for consistent testing across the application.
"""
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID
from fastapi import status
from sqlalchemy.orm import Session

from retainerkit.database.models import (
    Client, ClientMember, ClientRole, Contract, User, WorkLog, Workspace,
    WorkspaceMember, WorkspaceRole
)


API = "/api/v1"


class BaseAPITest:
    """Base class for API endpoint tests."""

    def assert_success_response(self, response, expected_status: int = status.HTTP_200_OK):
        """Assert that response indicates success."""
        assert response.status_code == expected_status, response.text
        assert response.json() is not None

    def assert_error_response(self, response, expected_status: int, expected_error: Optional[str] = None):
        """Assert that response indicates an error."""
        assert response.status_code == expected_status, response.text
        if expected_error:
            response_data = response.json()
            assert "detail" in response_data
            assert expected_error in response_data["detail"]

    def assert_validation_error(self, response, field_name: Optional[str] = None):
        """Assert that response indicates a request-body validation error."""
        assert response.status_code == 422, response.text
        if field_name:
            errors = response.json()["detail"]
            field_errors = [error for error in errors if error.get("loc") and field_name in error["loc"]]
            assert len(field_errors) > 0

    def assert_bad_request(self, response, expected_error: Optional[str] = None):
        """Assert that response indicates a domain validation error."""
        self.assert_error_response(response, status.HTTP_400_BAD_REQUEST, expected_error)

    def assert_unauthorized(self, response):
        """Assert that response indicates unauthorized access."""
        self.assert_error_response(response, status.HTTP_401_UNAUTHORIZED)

    def assert_forbidden(self, response):
        """Assert that response indicates forbidden access."""
        self.assert_error_response(response, status.HTTP_403_FORBIDDEN)

    def assert_not_found(self, response):
        """Assert that response indicates resource not found."""
        self.assert_error_response(response, status.HTTP_404_NOT_FOUND)

    def assert_conflict(self, response, expected_error: Optional[str] = None):
        """Assert that response indicates a conflict."""
        self.assert_error_response(response, status.HTTP_409_CONFLICT, expected_error)


class DatabaseTestUtilities:
    """Seed rows directly for service-level tests."""

    @staticmethod
    def create_test_user(db_session: Session, email: str, name: Optional[str] = None) -> User:
        user = User(email=email, name=name)
        db_session.add(user)
        db_session.commit()
        return user

    @staticmethod
    def create_test_workspace(db_session: Session, owner: User, name: str = "Test Workspace") -> Workspace:
        workspace = Workspace(owner_user_id=owner.id, name=name)
        db_session.add(workspace)
        db_session.commit()
        return workspace

    @staticmethod
    def add_workspace_member(db_session: Session, workspace: Workspace, user: User,
                             role: WorkspaceRole) -> WorkspaceMember:
        member = WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role)
        db_session.add(member)
        db_session.commit()
        return member

    @staticmethod
    def create_test_client(db_session: Session, workspace: Workspace, name: str = "Test Client",
                           created_at: Optional[datetime] = None) -> Client:
        client = Client(workspace_id=workspace.id, name=name,
                        created_at=created_at or datetime.now(timezone.utc))
        db_session.add(client)
        db_session.commit()
        return client

    @staticmethod
    def add_client_member(db_session: Session, client: Client, user: User,
                          client_role: ClientRole = ClientRole.CLIENT_USER,
                          created_at: Optional[datetime] = None) -> ClientMember:
        member = ClientMember(client_id=client.id, user_id=user.id, client_role=client_role,
                              created_at=created_at or datetime.now(timezone.utc))
        db_session.add(member)
        db_session.commit()
        return member

    @staticmethod
    def create_test_contract(db_session: Session, client: Client, hourly_rate_cents: Optional[int] = 10000,
                             currency: str = "USD") -> Contract:
        contract = Contract(workspace_id=client.workspace_id, client_id=client.id, title="Retainer",
                            hourly_rate_cents=hourly_rate_cents, currency=currency)
        db_session.add(contract)
        db_session.commit()
        return contract

    @staticmethod
    def create_test_work_log(db_session: Session, contract: Contract, work_date: date, minutes: int,
                             created_by: Optional[UUID] = None) -> WorkLog:
        work_log = WorkLog(workspace_id=contract.workspace_id, contract_id=contract.id, work_date=work_date,
                           minutes=minutes, description="Work", created_by_user_id=created_by)
        db_session.add(work_log)
        db_session.commit()
        return work_log


class TestDataFactory:
    """Factory for API request payloads."""

    __test__ = False

    @staticmethod
    def create_contract(client_id: str, **overrides):
        default_data = {
            "clientId": client_id,
            "title": "Monthly retainer",
            "hourlyRateCents": 10000,
            "currency": "USD",
        }
        return {**default_data, **overrides}

    @staticmethod
    def create_work_log(contract_id: str, **overrides):
        default_data = {
            "contractId": contract_id,
            "workDate": "2024-01-10",
            "minutes": 90,
            "description": "Backend work",
        }
        return {**default_data, **overrides}
