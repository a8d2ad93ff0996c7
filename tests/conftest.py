import pytest

from helpers.drafts import NOW, SCHEMA_DIR, TODAY
from trial_survey.controller import SurveyController
from trial_survey.repository import InMemoryKeyValueStore, ParticipantRepository
from trial_survey.schema import SchemaStore


@pytest.fixture(scope="session")
def schema():
    """Load the v1 question schemas once for the entire test session."""
    s = SchemaStore(schema_dir=SCHEMA_DIR)
    s.load()
    return s


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def repo(kv):
    return ParticipantRepository(kv)


@pytest.fixture
def make_controller(schema, repo):
    """Build controllers sharing the test store, with a fixed clock and date."""

    def _make(participant_repo=None):
        return SurveyController(
            schema,
            participant_repo or repo,
            id_factory=lambda: "MB2W_1718000000000_test00001",
            clock=lambda: NOW,
            today=lambda: TODAY,
        )

    return _make


@pytest.fixture
def controller(make_controller):
    return make_controller()
