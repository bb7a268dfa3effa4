"""LLM settings resolution.

Precedence, highest first:
  1. explicit per-call settings (an override, or an agent box's settings)
  2. the agent's reasoning block
  3. the process-wide ``globalLLMSettings`` record
  4. the configured fallback (``ollama`` / ``mistral-7b`` by default)

A source that cannot be read counts as absent, so resolution always
returns a value.
"""

from __future__ import annotations

import logging

from orchestrator_bridge.agent.models import LLMSettings, ReasoningCapability
from orchestrator_bridge.agent.store import ConfigStore
from orchestrator_bridge.config import settings as app_settings
from orchestrator_bridge.constants import GLOBAL_LLM_SETTINGS_KEY
from orchestrator_bridge.errors import ConfigStoreError

logger = logging.getLogger(__name__)


def fallback_settings() -> LLMSettings:
    return LLMSettings(
        provider=app_settings.FALLBACK_LLM_PROVIDER,
        model=app_settings.FALLBACK_LLM_MODEL,
    )


async def load_agent_box_settings(store: ConfigStore, box_id: str) -> LLMSettings | None:
    """Search every stored session for the agent box and return its settings."""
    for key in await store.keys():
        try:
            session = await store.get(key)
        except ConfigStoreError as e:
            logger.debug("Skipping unreadable key %s: %s", key, e)
            continue
        if not isinstance(session, dict):
            continue
        boxes = session.get("agentBoxes")
        if not isinstance(boxes, list):
            continue
        for box in boxes:
            if isinstance(box, dict) and box.get("id") == box_id:
                found = LLMSettings.from_record(box)
                if found is not None:
                    logger.info(
                        "Found agent box %s settings: %s/%s",
                        box_id,
                        found.provider,
                        found.model,
                    )
                    return found
    logger.warning("Agent box %s not found in any session", box_id)
    return None


async def load_global_settings(store: ConfigStore) -> LLMSettings | None:
    return LLMSettings.from_record(await store.get(GLOBAL_LLM_SETTINGS_KEY))


async def resolve_settings(
    store: ConfigStore | None,
    *,
    override: LLMSettings | None = None,
    agent_box_id: str | None = None,
    reasoning: ReasoningCapability | None = None,
    fallback: LLMSettings | None = None,
) -> LLMSettings:
    if override is not None:
        return override

    if agent_box_id and store is not None:
        try:
            box_settings = await load_agent_box_settings(store, agent_box_id)
        except ConfigStoreError as e:
            logger.warning("Failed to load agent box %s settings: %s", agent_box_id, e)
        else:
            if box_settings is not None:
                return box_settings

    if reasoning is not None and reasoning.settings is not None:
        return reasoning.settings

    if store is not None:
        try:
            global_settings = await load_global_settings(store)
        except ConfigStoreError as e:
            logger.warning("Failed to load global LLM settings: %s", e)
        else:
            if global_settings is not None:
                return global_settings

    return fallback or fallback_settings()
