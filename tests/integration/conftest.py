import os

import pytest
from dotenv import find_dotenv, load_dotenv

# Cargar .env lo más temprano posible (antes de pytest_collection_modifyitems)
load_dotenv(find_dotenv(usecwd=True))


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    base_url = os.getenv("LLM_CHAT_BASE_URL")
    for item in items:
        if "integration" in item.keywords and not base_url:
            item.add_marker(pytest.mark.skip(reason="Falta LLM_CHAT_BASE_URL en entorno/.env"))
