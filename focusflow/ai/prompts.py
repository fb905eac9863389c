"""Prompt builders for the generation job kinds."""

from __future__ import annotations

from datetime import date

from focusflow.schema.params import LearningPlanParams, PersonalizationParams, PlanningParams, SubtaskGenerationParams

_LANGUAGE_NAMES = {"zh": "Traditional Chinese", "en": "English"}

_DIAGNOSTIC_ROLE = (
  "You are a world-class AI learning consultant. Your purpose is not just to ask questions but to conduct a diagnostic interview "
  "that uncovers the user's needs, motivations and context. Your insights shape a personalized learning plan."
)

_DIAGNOSTIC_RULES = """Core principles:
1. Diagnostic dialogue: start with 1-2 critical, high-level questions. For vague input ask more (up to 4). For very detailed input ask none and set isSufficient to true.
2. Deep analysis: infer goals, current proficiency beyond a simple label, resource constraints, preferred learning style and unstated roadblocks.
3. Every question must carry diagnostic value. Ask why, not just what.

Output rules:
- Return a JSON object with questions, isSufficient, initialInsight, autoDetectedTaskType and inferredCurrentProficiency.
- Question type is one of text, choice, scale, boolean; choice questions list their options.
- If the input is sufficient, set isSufficient to true, give a confident initialInsight and return an empty questions list."""

_DESIGNER_ROLE = "You are a professional learning designer. Decide the number of subtasks from the content scope, the time constraint and the skill gap."


def _language_line(language: str) -> str:
  return f"Write all content in {_LANGUAGE_NAMES.get(language, 'English')}."


def _task_block(params: PlanningParams) -> str:
  lines = [
    "Task information:",
    f"- Title: {params.title}",
    f"- Description: {params.description or 'No description provided'}",
    f"- Task type: {params.task_type}",
    f"- Current level: {params.current_proficiency}",
    f"- Target level: {params.target_proficiency}",
  ]
  return "\n".join(lines)


def _clarification_block(params: PlanningParams) -> str:
  if not params.clarification_responses:
    return "Personal context:\n- No additional personal context."
  answers = "\n".join(f"- {key}: {value}" for key, value in params.clarification_responses.items())
  return f"Personal context:\n{answers}"


def _time_context(due_date: date | None, today: date) -> str:
  if due_date is None:
    return "No specific deadline."
  available_days = (due_date - today).days
  if available_days > 0:
    return f"Available time: {available_days} days."
  return "Urgent: the deadline has been reached."


def build_personalization_prompt(params: PersonalizationParams) -> str:
  """Build the diagnostic interview prompt."""
  return (
    f"{_DIAGNOSTIC_ROLE}\n\n{_DIAGNOSTIC_RULES}\n\n"
    "Analyze the following user goal to conduct your diagnostic interview.\n\n"
    f'Task title: "{params.title}"\n'
    f'Task description: "{params.description or "No description provided"}"\n\n'
    f"{_language_line(params.language)}"
  )


def build_subtask_prompt(params: SubtaskGenerationParams, *, today: date | None = None) -> str:
  """Build the subtask decomposition prompt."""
  reference_day = today or date.today()
  return (
    f"{_DESIGNER_ROLE}\n"
    "Return a JSON object with a non-empty subtasks list. Number subtasks with order starting at 1, "
    "estimate aiEstimatedDuration in minutes and set completed to false.\n"
    f"{_language_line(params.language)}\n\n"
    f"{_task_block(params)}\n- Time constraint: {_time_context(params.due_date, reference_day)}\n\n"
    f"{_clarification_block(params)}\n\n"
    "Decide the most suitable number of subtasks and generate detailed learning subtasks."
  )


def build_learning_plan_prompt(params: LearningPlanParams) -> str:
  """Build the unified learning plan prompt."""
  return (
    "You are a professional learning designer. Create a complete learning plan with an achievable goal, recommended tools, "
    "checkpoints, an estimated time to completion in hours and dynamically sized subtasks. Include personalizationQuestions "
    "only for information that would still improve the plan; use an empty list otherwise.\n"
    f"{_language_line(params.language)}\n\n"
    f"{_task_block(params)}\n\n"
    f"{_clarification_block(params)}"
  )
