import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Repository root on the import path so `import database` works from anywhere.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from database import Database  # noqa: E402
from utils.errors import MessagingFailure  # noqa: E402

GUILD_ID = 111111111111111111
OTHER_GUILD_ID = 222222222222222222


class FakeMessagingPort:
    """
    Records every thread and post. Thread creation raises MessagingFailure for
    channels in `failing`; posting raises it for threads whose parent channel is
    in `failing_posts`.
    """

    def __init__(self, failing=(), failing_posts=()):
        self.failing = set(failing)
        self.failing_posts = set(failing_posts)
        self.threads = []
        self.posts = []
        self._next_thread_id = 900

    async def create_private_thread(self, channel_id, title):
        if channel_id in self.failing:
            raise MessagingFailure(f"channel {channel_id} is broken", target_id=channel_id)
        self._next_thread_id += 1
        thread = SimpleNamespace(id=self._next_thread_id, parent_id=channel_id, name=title)
        self.threads.append(thread)
        return thread

    async def post(self, target, *, content=None, embeds=(), user_ids=(), role_ids=()):
        if target.parent_id in self.failing_posts:
            raise MessagingFailure(f"cannot post in thread {target.id}", target_id=target.id)
        self.posts.append(
            SimpleNamespace(
                target=target,
                content=content,
                embeds=list(embeds),
                user_ids=list(user_ids),
                role_ids=list(role_ids),
            )
        )


@pytest.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    await database.init_pool()
    yield database
    await database.close()


@pytest.fixture
def messaging():
    return FakeMessagingPort()
