# tests/integration/conftest.py - v1
"""Shared fixtures for integration tests.

Most integration tests run fully in-process: real stores under tmp_path,
real local files, the glossary translator and the pattern term extractor.

The Redis store test needs a container:
- session scope: the container starts once per pytest session
- function scope: a flushed database per test

Containers are reached through their bridge network IP + internal port,
which also works from a devcontainer with docker-outside-of-docker.
"""

from __future__ import annotations

import logging
import time

import pytest

from transbatch.jobs.local_resolver import LocalFileResolver
from transbatch.jobs.processor import JobProcessor
from transbatch.jobs.setup import JobTranslationSetup
from transbatch.jobs.term_extractor import PatternTermExtractor
from transbatch.jobs.translator import GlossaryTranslator
from transbatch.store.json_store import JsonStateStore
from transbatch.terms.memory_dictionary_store import MemoryDictionaryStore
from transbatch.terms.models import DictionaryTerm

logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "redis: marks tests requiring Redis container")


# =====================================================================
#  DEVCONTAINER NETWORKING HELPERS
# =====================================================================

def _get_container_bridge_ip(container, max_attempts: int = 10) -> str:
    """Get container bridge network IP with retries."""
    for attempt in range(max_attempts):
        try:
            wrapped = container.get_wrapped_container()
            wrapped.reload()
            networks = wrapped.attrs.get("NetworkSettings", {}).get("Networks", {})
            for net_name, net_info in networks.items():
                ip = net_info.get("IPAddress", "")
                if ip:
                    logger.info(
                        "Container %s IP: %s (network: %s, attempt %d)",
                        wrapped.short_id, ip, net_name, attempt + 1,
                    )
                    return ip
            logger.debug("Container IP empty, attempt %d/%d", attempt + 1, max_attempts)
        except Exception as e:
            logger.debug("Error getting IP (attempt %d): %s", attempt + 1, e)
        time.sleep(0.5)

    raise RuntimeError(
        f"Could not obtain container bridge IP after {max_attempts} attempts"
    )


def _docker_available() -> bool:
    """Check if Docker daemon is reachable."""
    try:
        import docker
        client = docker.from_env()
        client.ping()
        return True
    except Exception:
        return False


# =====================================================================
#  LOCAL TRANSLATION STACK - no Docker required
# =====================================================================

@pytest.fixture
def glossary() -> MemoryDictionaryStore:
    return MemoryDictionaryStore(
        {
            "glossary": [
                DictionaryTerm(source="Google Drive", target="グーグルドライブ"),
                DictionaryTerm(source="Machine Learning", target="機械学習"),
                DictionaryTerm(source="スプレッドシート", target="spreadsheet"),
            ]
        }
    )


@pytest.fixture
def json_store(tmp_path) -> JsonStateStore:
    return JsonStateStore(root=tmp_path / "state")


@pytest.fixture
def local_stack(json_store, glossary):
    """(resolver, setup, processor) wired on the same JSON state store."""
    resolver = LocalFileResolver()
    setup = JobTranslationSetup(resolver, json_store)
    processor = JobProcessor(
        json_store, glossary, PatternTermExtractor(), GlossaryTranslator()
    )
    return resolver, setup, processor


@pytest.fixture
def documents(tmp_path):
    """Three source documents: two translatable, one empty."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "intro.txt").write_text(
        "Share files with Google Drive.\n\nMachine Learning helps.\n", encoding="utf-8"
    )
    (docs / "guide.md").write_text(
        "# Guide\n\nOpen the スプレッドシート first.\n", encoding="utf-8"
    )
    (docs / "empty.txt").write_text("\n\n", encoding="utf-8")
    return docs


# =====================================================================
#  REDIS CONTAINER - session scope (bridge IP)
# =====================================================================

REDIS_IMAGE = "redis:7-alpine"
REDIS_INTERNAL_PORT = 6379


@pytest.fixture(scope="session")
def redis_container():
    if not _docker_available():
        pytest.skip("Docker not available")

    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    container = DockerContainer(REDIS_IMAGE).with_exposed_ports(REDIS_INTERNAL_PORT)
    container.start()
    wait_for_logs(container, predicate=r"Ready to accept connections", timeout=60)

    ip = _get_container_bridge_ip(container)
    logger.info("Redis ready at %s:%d", ip, REDIS_INTERNAL_PORT)
    yield {"host": ip, "port": REDIS_INTERNAL_PORT}
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container) -> str:
    c = redis_container
    return f"redis://{c['host']}:{c['port']}/0"


@pytest.fixture
def redis_store(redis_url):
    from transbatch.store.redis_store import RedisStateStore
    store = RedisStateStore(redis_url=redis_url)
    store._client.flushdb()
    yield store
    store._client.flushdb()
