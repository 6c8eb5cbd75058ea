# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures and configuration for all tests:
an in-memory stand-in for the Gemini File Search gateway, a credential
provider, and a session controller wired to both.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

os.environ.setdefault("LOGS_DIR", str(project_root / "logs" / "tests"))

from fakes import FakeCredentialProvider, FakeGateway  # noqa: E402
from ragstore_chat.core.credentials import CredentialGate  # noqa: E402
from ragstore_chat.core.models import Citation  # noqa: E402
from ragstore_chat.core.session import SessionController  # noqa: E402
from ragstore_chat.core.staging import StagingSet  # noqa: E402


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def provider() -> FakeCredentialProvider:
    return FakeCredentialProvider()


@pytest.fixture
def controller(gateway: FakeGateway, provider: FakeCredentialProvider) -> SessionController:
    """Controller with no registration pause."""
    return SessionController(
        gateway,
        CredentialGate(provider),
        staging=StagingSet(allowed_extensions=[".pdf", ".txt", ".md"], max_size_mb=20),
        register_pause=0,
    )


@pytest.fixture
async def welcome_controller(controller: SessionController) -> SessionController:
    """Controller that has finished startup and sits in ``Welcome``."""
    await controller.start()
    return controller


@pytest.fixture
def citation() -> Citation:
    return Citation(title="manual.pdf", uri=None, text="Hold the reset button for 5 s.")


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Provide sample PDF content for testing.

    Returns
    -------
    bytes
        Minimal valid PDF content.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""
