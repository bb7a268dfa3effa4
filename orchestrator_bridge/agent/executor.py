"""AgentExecutor: turns a stored agent plus an input into one model invocation.

Pipeline (each step moves the run to the next ExecutionState):

    IDLE -> CONFIG_LOADED -> CAPABILITY_CHECKED -> SETTINGS_RESOLVED
         -> PROMPT_BUILT -> INVOKED -> SUCCEEDED | FAILED

Configuration and capability problems fail before any model traffic.
Settings lookups that fail fall through to the next source. Invocation
failures are reported as returned by the LLM client and never retried here.
Every path ends in an AgentExecutionResult; nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Callable

import httpx
from pydantic import ValidationError

from orchestrator_bridge.agent.models import (
    AgentConfig,
    AgentExecutionRequest,
    AgentExecutionResult,
    ExecutionState,
    InputEvent,
    LLMSettings,
    ReasoningCapability,
)
from orchestrator_bridge.agent.prompts import (
    Prompt,
    build_prompt_from_context,
    build_prompt_from_input,
)
from orchestrator_bridge.agent.providers import map_model_id
from orchestrator_bridge.agent.settings import resolve_settings
from orchestrator_bridge.agent.store import ConfigStore, HttpConfigStore, agent_storage_key
from orchestrator_bridge.config import settings
from orchestrator_bridge.constants import (
    AGENT_LLM_TIMEOUT_SECONDS,
    AGENT_MAX_TOKENS,
    AGENT_TEMPERATURE,
)
from orchestrator_bridge.errors import (
    RUNTIME_NOT_READY_MESSAGE,
    UNREACHABLE_MESSAGE,
    AgentExecutionError,
    AgentNotFound,
    ConfigStoreError,
    ErrorKind,
    RuntimeNotReady,
)
from orchestrator_bridge.llm.client import (
    check_backend_reachable,
    check_llm_availability,
    send_llm_request,
)
from orchestrator_bridge.llm.types import ChatMessage, ChatRequest

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[ReasoningCapability], Prompt]


class AgentExecutor:
    def __init__(
        self,
        store: ConfigStore | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        preflight: bool | None = None,
        fallback: LLMSettings | None = None,
        llm_timeout: float = AGENT_LLM_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store if store is not None else HttpConfigStore(client)
        self._client = client
        self.preflight = settings.AGENT_PREFLIGHT_CHECKS if preflight is None else preflight
        self.fallback = fallback
        self.llm_timeout = llm_timeout

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def run_agent_execution(
        self,
        agent_id: str | int,
        event: InputEvent,
        *,
        settings_override: LLMSettings | None = None,
    ) -> AgentExecutionResult:
        """Run an agent on an input event (used by the input coordinator)."""
        logger.info(
            "Running agent %s: source=%s text=%r",
            agent_id,
            event.source,
            (event.text or "")[:100],
        )
        return await self._execute(
            agent_id,
            lambda reasoning: build_prompt_from_input(reasoning, event),
            override=settings_override,
        )

    async def execute_agent(self, request: AgentExecutionRequest) -> AgentExecutionResult:
        """Run an agent on a UI-supplied context, optionally as an agent box."""
        logger.info(
            "Executing agent %s (agent box: %s)", request.agent_id, request.agent_box_id
        )
        return await self._execute(
            request.agent_id,
            lambda reasoning: build_prompt_from_context(reasoning, request.context),
            override=request.settings_override,
            agent_box_id=request.agent_box_id,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def load_agent_config(self, agent_id: str | int) -> AgentConfig:
        key = agent_storage_key(agent_id)
        logger.debug("Loading agent config: %s", key)
        try:
            record = await self.store.get(key)
        except ConfigStoreError as e:
            raise AgentNotFound(f"Agent {agent_id} not found ({e})") from e
        if not isinstance(record, dict):
            raise AgentNotFound(f"Agent {agent_id} not found")
        try:
            return AgentConfig.model_validate(record)
        except ValidationError as e:
            raise AgentNotFound(
                f"Agent {agent_id} has a malformed configuration"
            ) from e

    async def _check_runtime(self) -> None:
        if not await check_backend_reachable(client=self._client):
            raise AgentExecutionError(
                UNREACHABLE_MESSAGE, kind=ErrorKind.TRANSPORT_UNREACHABLE
            )
        if not await check_llm_availability(client=self._client):
            raise RuntimeNotReady(RUNTIME_NOT_READY_MESSAGE)

    @staticmethod
    def _advance(
        agent_id: str | int, current: ExecutionState, target: ExecutionState
    ) -> ExecutionState:
        logger.debug("Agent %s: %s -> %s", agent_id, current.value, target.value)
        return target

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _execute(
        self,
        agent_id: str | int,
        build_prompt: PromptBuilder,
        *,
        override: LLMSettings | None = None,
        agent_box_id: str | None = None,
    ) -> AgentExecutionResult:
        state = ExecutionState.IDLE
        try:
            # Step 1: Load configuration
            config = await self.load_agent_config(agent_id)
            state = self._advance(agent_id, state, ExecutionState.CONFIG_LOADED)

            # Step 2: Capability gate, local only
            reasoning = config.require_reasoning(agent_id)
            state = self._advance(agent_id, state, ExecutionState.CAPABILITY_CHECKED)

            # Step 3: Settings
            llm_settings = await resolve_settings(
                self.store,
                override=override,
                agent_box_id=agent_box_id,
                reasoning=reasoning,
                fallback=self.fallback,
            )
            logger.info(
                "Agent %s using %s/%s",
                agent_id,
                llm_settings.provider,
                llm_settings.model,
            )
            state = self._advance(agent_id, state, ExecutionState.SETTINGS_RESOLVED)

            # Step 4: Prompt
            prompt = build_prompt(reasoning)
            state = self._advance(agent_id, state, ExecutionState.PROMPT_BUILT)

            # Step 5: Model mapping, rejects unsupported providers
            model_id = map_model_id(llm_settings.provider, llm_settings.model)

            # Step 6: Invoke
            if self.preflight:
                await self._check_runtime()
            state = self._advance(agent_id, state, ExecutionState.INVOKED)
            logger.info("Agent %s calling model %s", agent_id, model_id)
            response = await send_llm_request(
                ChatRequest(
                    model_id=model_id,
                    messages=[
                        ChatMessage(role="system", content=prompt.system),
                        ChatMessage(role="user", content=prompt.user),
                    ],
                    temperature=AGENT_TEMPERATURE,
                    max_tokens=AGENT_MAX_TOKENS,
                ),
                client=self._client,
                timeout=self.llm_timeout,
            )
        except AgentExecutionError as e:
            logger.warning("Agent %s failed at %s: %s", agent_id, state.value, e)
            return AgentExecutionResult.failed(agent_id, e.message, e.kind, state)
        except Exception as e:
            logger.exception("Agent %s failed unexpectedly at %s", agent_id, state.value)
            return AgentExecutionResult.failed(
                agent_id,
                str(e) or type(e).__name__,
                ErrorKind.CHAT_COMPLETION_FAILED,
                state,
            )

        # Step 7: Normalize
        if not response.success:
            logger.error("Agent %s LLM call failed: %s", agent_id, response.error)
            return AgentExecutionResult.failed(
                agent_id,
                response.error or "LLM call failed",
                response.error_kind,
                state,
            )

        self._advance(agent_id, state, ExecutionState.SUCCEEDED)
        return AgentExecutionResult.succeeded(
            agent_id, response.content, tokens_used=response.tokens_used
        )
