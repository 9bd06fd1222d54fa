"""
Shared fixtures for regulation search tests
"""
import os
from unittest.mock import MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from regulation_search.llm import RelevanceScorer
from regulation_search.models import Regulation
from regulation_search.pipeline import RegulationSession
from regulation_search.search import RegulationSearcher
from regulation_search.store import RegulationStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep RS_* overrides from the outer environment out of the tests"""
    for key in list(os.environ):
        if key.startswith("RS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def regulations():
    return [
        Regulation(
            id=1,
            prefecture="京都府",
            city="京都市",
            category="道路",
            title="京都市道路条例",
            content="市道の管理および道路占用の許可について定める。",
        ),
        Regulation(
            id=2,
            prefecture="東京都",
            city="新宿区",
            category="環境",
            title="新宿区環境保全条例",
            content="区内の騒音および大気汚染の防止について定める。",
        ),
        Regulation(
            id=3,
            prefecture="大阪府",
            city="大阪市",
            category="景観",
            title="大阪市景観条例",
            content="都市景観の形成に関する基本的事項を定める。",
        ),
    ]


@pytest.fixture
def make_scorer():
    """Build a scorer around a stub model"""
    def _make(llm, **kwargs):
        return RelevanceScorer(llm=llm, **kwargs)
    return _make


@pytest.fixture
def fake_llm():
    """LangChain fake chat model replying with the given strings in order"""
    def _make(*responses):
        return FakeListChatModel(responses=list(responses))
    return _make


@pytest.fixture
def mock_supabase(regulations):
    """Supabase client mock returning the sample rows"""
    client = MagicMock()
    rows = [reg.to_dict() for reg in regulations]
    client.table.return_value.select.return_value.limit.return_value.execute.return_value = MagicMock(data=rows)
    return client


@pytest.fixture
def make_session(mock_supabase):
    """Session wired to the Supabase mock and a stub model"""
    def _make(llm, client=None):
        store = RegulationStore(client=client or mock_supabase)
        searcher = RegulationSearcher(scorer=RelevanceScorer(llm=llm))
        return RegulationSession(store=store, searcher=searcher)
    return _make
