from concurrent.futures import Future

import pytest

from pagepulse import db


@pytest.fixture
def database(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    url = f"sqlite:///{tmp_path / 'pagepulse.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    db.init_db(url)
    return url


class ManualExecutor:
    """Executor double that runs submitted jobs only when told to, in any order."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run(self, index=0):
        future, fn, args, kwargs = self.pending.pop(index)
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

    def run_all(self):
        while self.pending:
            self.run()


@pytest.fixture
def manual_executor():
    return ManualExecutor()


FORM = {
    'title': 'Spring Sale',
    'audience': 'Small Businesses',
    'industry': 'Retail',
    'campaign_type': 'Sale/Discount Promotion',
    'keywords': 'discounts, spring deals, ',
}


@pytest.fixture
def form_values():
    return dict(FORM)
