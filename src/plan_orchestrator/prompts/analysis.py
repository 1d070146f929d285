"""Analysis phase prompt templates.

The model is asked to write its reasoning as prose first and the machine
readable plan last, separated by a marker line. Only the prose is streamed to
observers; the JSON block is parsed once the stream ends.
"""

from typing import Optional

PLAN_MARKER = "===PLAN==="

ANALYSIS_SYSTEM_PROMPT = """You are a release engineer reviewing a proposed code change before it is deployed.
Be factual and neutral. Mention every action you propose by its identifier in your explanation."""


def build_analysis_prompt(
    change_summary: str,
    target: str,
    diff: Optional[str] = None,
    max_diff_chars: int = 20000,
) -> str:
    """Build the change analysis prompt.

    Args:
        change_summary: Human description of the proposed change
        target: Deployment target (e.g., "staging", "production")
        diff: Optional unified diff of the change
        max_diff_chars: Diff text beyond this length is truncated

    Returns:
        Formatted prompt ready to send to the LLM
    """
    diff_section = "No diff provided."
    if diff:
        diff_text = diff if len(diff) <= max_diff_chars else diff[:max_diff_chars] + "\n... (diff truncated)"
        diff_section = f"```diff\n{diff_text}\n```"

    return f"""# Proposed Change
{change_summary}

# Target Environment
{target}

# Diff
{diff_section}

# Task
1. Explain, in plain prose, what the change does, what could go wrong, and
   which deployment actions are needed. Refer to each action by its identifier.
2. Then output a line containing exactly `{PLAN_MARKER}`.
3. After the marker, output a single JSON object with this exact structure:
```json
{{
  "actions": ["action_identifier", "..."],
  "confidence": 0.0,
  "steps": [
    {{"id": "1", "title": "Short step title", "command": "optional shell command"}}
  ]
}}
```

# Rules
- `confidence` is a number between 0 and 1.
- Steps run strictly in order; a failed step stops the deployment.
- Use snake_case action identifiers (e.g., `run_migrations`, `restart_service`).
- Do not write anything after the JSON object.
"""
