import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from tracker.auth import issue_access_token
from tracker.models import ActivityType, Property
from tracker.status import UserRole

@pytest.fixture
def user(db):
    U = get_user_model()
    return U.objects.create_user(username="alice", email="alice@example.com", password="pass1234", name="Alice")

@pytest.fixture
def other_user(db):
    U = get_user_model()
    return U.objects.create_user(username="bob", email="bob@example.com", password="pass1234", name="Bob")

@pytest.fixture
def admin_user(db):
    U = get_user_model()
    return U.objects.create_user(
        username="boss", email="boss@example.com", password="pass1234", name="Boss", role=UserRole.ADMIN
    )

@pytest.fixture
def property_(db):
    return Property.objects.create(name="Maple House", address="1 Maple St", latitude=40.7, longitude=-74.0)

@pytest.fixture
def visit(db):
    return ActivityType.objects.create(name="visit", description="Sales rep visited property", weight=10)

@pytest.fixture
def call(db):
    return ActivityType.objects.create(name="call", description="Called property contact", weight=8)

@pytest.fixture
def inspection(db):
    return ActivityType.objects.create(name="inspection", description="Physical inspection logged", weight=6)

@pytest.fixture
def api_client():
    return APIClient()

@pytest.fixture
def access_token(user):
    return issue_access_token(user)

@pytest.fixture
def admin_access_token(admin_user):
    return issue_access_token(admin_user)
