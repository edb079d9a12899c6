"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from budgetly.api.main import create_app
from budgetly.infrastructure.database.models import Base
from budgetly.infrastructure.database.session import get_db
from budgetly.domain.models import EMI, EmiDetails, ExpenseEntry, IncomeEntry, MonthSlice


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def user(client: TestClient) -> dict:
    """A signed-in user with an empty ledger"""
    response = client.post(
        "/v1/users",
        json={"uid": "user_123", "email": "asha@example.com", "name": "Asha"},
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def sample_month() -> MonthSlice:
    """January 2024: salary 50000, rent 15000, groceries 5000"""
    return MonthSlice(
        income=[
            IncomeEntry(id="inc_1", amount=50000, label="Salary", source="Employer", date=date(2024, 1, 1)),
        ],
        expenses=[
            ExpenseEntry(id="exp_1", amount=15000, label="Rent", category="Housing", date=date(2024, 1, 3)),
            ExpenseEntry(id="exp_2", amount=5000, label="Groceries", category="Food", date=date(2024, 1, 10)),
        ],
    )


def emi_expense(product: str, number: int, duration: int, monthly: float, month: int, paid: bool = False) -> ExpenseEntry:
    """Installment ``number`` of a 2024 EMI starting in January"""
    return ExpenseEntry(
        id=f"{product.lower()}_{number}",
        amount=monthly,
        label=f"{product} - EMI {number}/{duration}",
        category="EMI",
        date=date(2024, month, 1),
        type=EMI,
        emi_details=EmiDetails(
            duration=duration,
            remaining_months=duration - number,
            monthly_amount=monthly,
            started_on=date(2024, 1, 1),
            installment_number=number,
            paid=paid,
        ),
    )


@pytest.fixture
def make_emi():
    """Factory for stored EMI installments"""
    return emi_expense
