from datetime import datetime

import pytest

from formai.analysis.models import Choice, Entry, Field, FieldType, Form
from formai.config.settings import Settings
from tests.fakes import InMemoryAnnotationStore, InMemoryAuditLog, InMemoryOptionStore


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        auth_key="unit-test-auth-key-0123456789",
        auth_salt="unit-test-auth-salt-9876543210",
        api_url="https://api.example.test/v1/messages",
    )


@pytest.fixture()
def option_store() -> InMemoryOptionStore:
    return InMemoryOptionStore()


@pytest.fixture()
def annotation_store() -> InMemoryAnnotationStore:
    return InMemoryAnnotationStore()


@pytest.fixture()
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture()
def contact_form() -> Form:
    """A typical contact form covering every rendering rule."""
    return Form(
        id=1,
        title="Contact Us",
        fields=(
            Field(id=1, type=FieldType.TEXT, label="Company Name"),
            Field(id=3, type=FieldType.NAME, label="Your Name"),
            Field(id=4, type=FieldType.EMAIL, label="Email"),
            Field(id=5, type=FieldType.TEXTAREA, label="Message"),
            Field(
                id=6,
                type=FieldType.CHECKBOX,
                label="Services",
                choices=(Choice("Web Design"), Choice("SEO"), Choice("Hosting")),
            ),
            Field(id=7, type=FieldType.ADDRESS, label="Address"),
            Field(id=8, type=FieldType.HIDDEN, label="Tracking"),
            Field(id=9, type=FieldType.HTML, label="Intro"),
            Field(id=10, type=FieldType.TEXT, label="Internal Notes", admin_only=True),
        ),
    )


@pytest.fixture()
def contact_entry() -> Entry:
    return Entry(
        id=42,
        form_id=1,
        created_at=datetime(2025, 3, 14, 9, 30, 0),
        values={
            "1": "Acme Corp",
            "3.3": "John",
            "3.6": "Doe",
            "4": "john@x.com",
            "5": "We need a new website.",
            "6.1": "Web Design",
            "6.3": "Hosting",
            "7.1": "123 Main St",
            "7.3": "New York",
            "8": "utm=abc",
            "10": "VIP",
        },
    )
