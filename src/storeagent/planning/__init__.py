"""Next-step planning over a language model."""

from storeagent.planning.planner import LLMPlanGenerator, PlanGenerator, parse_plan

__all__ = ["LLMPlanGenerator", "PlanGenerator", "parse_plan"]
