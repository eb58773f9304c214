"""Mode-specific prompt text for the home assistant.

Allowed verbs: watching, monitoring, noting, preparing, confirming.
Baseline mode never uses task language.
"""
from typing import Dict, Any, List

from scoring.chat_mode import state_label
from scoring.formatting import fmt_money, fmt_pct, system_display_name

BASE_PROMPT = (
    "You are a calm home steward. You monitor a homeowner's major systems "
    "(HVAC, roof, water heater, electrical, plumbing) and explain what you observe. "
    "Use only the home snapshot provided. Never invent install dates, costs or permits. "
    "Prefer the verbs watching, monitoring, noting, preparing and confirming. "
    "Avoid fix, solve, optimize, upgrade and 'save you money'."
)

MODE_GUIDANCE = {
    "baseline_establishment": (
        "The baseline is still forming. Do not give advice, timelines or cost figures. "
        "Share what you can observe so far and ask one or two clarifying questions "
        "that would make the baseline clearer, such as a photo of an equipment label. "
        "Never say 'please upload', 'to continue', 'required', 'missing data', "
        "'you need to' or 'next step'."
    ),
    "elevated_attention": (
        "A system shows a deviation from its expected pattern. Stay calm and factual. "
        "Explain what you are observing and why it stands out, without alarm or urgency language. "
        "Offer to walk through options if the homeowner wants."
    ),
    "planning_window_advisory": (
        "A system is entering its planning window. Frame the answer around timing and budget: "
        "how long is likely left, what a proactive replacement involves, and what waiting means. "
        "Make clear that nothing needs to be done yet."
    ),
    "interpretive": (
        "The homeowner wants to understand the reasoning. Explain how you reached your view, "
        "citing where each fact came from (permit, inspection, owner report or estimate) "
        "and how confident you are."
    ),
    "silent_steward": (
        "All systems are stable. Answer briefly and reassuringly. "
        "Do not volunteer concerns that the snapshot does not support."
    ),
}

EMPTY_STATE_MESSAGES = {
    "silent_steward": "All systems stable. What would you like to understand about your home?",
    "baseline_establishment": "I'm monitoring with limited system history. I can share what I'm able to observe so far.",
    "interpretive": "What would you like me to explain?",
    "planning_window_advisory": "I can help you think through your options.",
    "elevated_attention": "I'm seeing something worth discussing. Ask me about it.",
}

SUGGESTED_PROMPTS = {
    "silent_steward": [
        "What are you monitoring?",
        "Walk me through my home's status",
        "Any patterns you're seeing?",
    ],
    "baseline_establishment": [
        "Help establish a clearer baseline",
        "What information would improve accuracy?",
        "What can you tell from what you see now?",
    ],
    "interpretive": [
        "Tell me more",
        "What does that mean for me?",
        "How confident are you?",
    ],
    "planning_window_advisory": [
        "Walk me through my options",
        "What happens if I wait?",
        "Help me understand the timeline",
    ],
    "elevated_attention": [
        "What are you seeing?",
        "How concerned should I be?",
        "What do you recommend?",
    ],
}


def suggested_prompts(mode: str) -> List[str]:
    return SUGGESTED_PROMPTS.get(mode, SUGGESTED_PROMPTS["silent_steward"])


def build_system_prompt(context: Dict[str, Any]) -> str:
    mode = context.get("mode", "baseline_establishment")
    guidance = MODE_GUIDANCE.get(mode, MODE_GUIDANCE["silent_steward"])
    return f"{BASE_PROMPT}\n\nCurrent mode: {mode}.\n{guidance}"


def snapshot_lines(context: Dict[str, Any]) -> List[str]:
    lines = [
        f"- System confidence: {context.get('system_confidence', 'Early')}",
        f"- Critical systems covered: {fmt_pct(context.get('critical_systems_coverage', 0.0))}",
        f"- Permits on file: {'yes' if context.get('permits_found') else 'no'}",
        f"- Owner-confirmed systems: {'yes' if context.get('user_confirmed_systems') else 'no'}",
    ]
    for s in context.get("systems", []):
        name = system_display_name(s["key"])
        line = f"- {name}: {state_label(s['state'])}, confidence {s['confidence']:.2f}"
        if s.get("months_remaining") is not None:
            line += f", about {max(0, round(s['months_remaining']))} months of expected life left"
        lines.append(line)
    costs = context.get("costs")
    if costs:
        lines.append(
            f"- Estimated cost: {fmt_money(costs.get('proactive'))} planned vs "
            f"{fmt_money(costs.get('emergency'))} emergency"
        )
    low = context.get("systems_with_low_confidence") or []
    if low:
        lines.append("- Still forming a baseline for: " + ", ".join(system_display_name(k) for k in low))
    return lines


def build_user_prompt(question: str, context: Dict[str, Any]) -> str:
    snapshot = "\n".join(snapshot_lines(context))
    return f"""Home snapshot:
{snapshot}

Homeowner question: {question}
"""
