import logging
import os
from typing import Dict, Any, Optional

from openai import OpenAI, OpenAIError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from assistant.prompts import EMPTY_STATE_MESSAGES, build_system_prompt, build_user_prompt, snapshot_lines, suggested_prompts
from scoring.chat_mode import chat_mode_label
from scoring.policy import policy_section

logger = logging.getLogger(__name__)


class AssistantError(Exception): pass


@retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.7, min=1, max=6),
    retry=retry_if_exception_type(AssistantError),
)
def _complete(client, system_prompt: str, user_prompt: str, model: str, temperature: float) -> str:
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
        )
    except OpenAIError as e:
        raise AssistantError(str(e))
    content = resp.choices[0].message.content
    if not content:
        raise AssistantError("empty completion")
    return content


def fallback_reply(question: str, context: Dict[str, Any]) -> str:
    """Deterministic reply built only from the snapshot."""
    mode = context.get("mode", "baseline_establishment")
    parts = [EMPTY_STATE_MESSAGES.get(mode, EMPTY_STATE_MESSAGES["silent_steward"]), ""]
    parts.append("**What I'm monitoring:**")
    parts.extend(snapshot_lines(context))
    if mode == "baseline_establishment":
        parts.append("")
        parts.append("A photo of an equipment label is usually enough to sharpen the baseline.")
    parts.append("")
    parts.append("_You could ask:_ " + " · ".join(suggested_prompts(mode)))
    return "\n".join(parts)


def synthesize_reply(question: str, context: Dict[str, Any], client: Optional[Any] = None) -> Dict[str, Any]:
    """
    If OPENAI_API_KEY is set (or a client is passed), ask the model for a mode-appropriate answer.
    Else, or when the model stays unreachable, return the deterministic snapshot reply.
    """
    mode = context.get("mode", "baseline_establishment")
    label = chat_mode_label(mode)

    if client is not None or os.getenv("OPENAI_API_KEY"):
        cfg = policy_section("assistant")
        try:
            answer_md = _complete(
                client or OpenAI(),
                build_system_prompt(context),
                build_user_prompt(question, context),
                model=cfg.get("model", "gpt-4o-mini"),
                temperature=float(cfg.get("temperature", 0.2)),
            )
            return {"answer_markdown": answer_md, "mode": mode, "label": label}
        except AssistantError as e:
            logger.warning("Assistant model unavailable, using snapshot reply: %s", e)
    else:
        logger.info("OPENAI_API_KEY not set, using snapshot reply")

    return {"answer_markdown": fallback_reply(question, context), "mode": mode, "label": label}
