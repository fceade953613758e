"""
Risk Simulation Engine - scenario text in, categorized risk scenarios out.

Results are point-in-time projections: they are kept in memory as the
latest display value per trial, never written to the entity store. A failed
run returns None and leaves the previous result in place. Each run records
one audit entry whatever the outcome.
"""

from typing import Dict, Optional

from backend.trialsight.ai_client import GenerationClient, ModelTier
from backend.trialsight.audit import AuditLog
from backend.trialsight.context import Actor, Trial
from backend.trialsight.errors import GenerationError, ValidationError
from backend.trialsight.prompts import build_simulation_prompt
from backend.trialsight.schemas import SimulationResult


def risk_band(score: int) -> str:
    if score > 75:
        return "Critical Risk"
    if score > 40:
        return "Moderate Risk"
    return "Low Risk"


class RiskSimulationEngine:

    def __init__(self, client: GenerationClient, audit: AuditLog):
        self.client = client
        self.audit = audit
        self._latest: Dict[str, SimulationResult] = {}

    def latest(self, trial_id: str) -> Optional[SimulationResult]:
        return self._latest.get(trial_id)

    async def run(self, trial: Trial, scenario: str) -> Optional[SimulationResult]:
        if not scenario or not scenario.strip():
            raise ValidationError("Scenario description is empty")

        prompt = build_simulation_prompt(scenario.strip(), trial.ai_context)
        try:
            result = await self.client.complete_structured(prompt, SimulationResult, ModelTier.DEEP)
        except GenerationError as e:
            print(f"[simulation] Simulation failed for {trial.protocol_id}: {e}")
            self.audit.record(
                Actor.USER, "Simulation",
                f"Risk Simulation for {trial.protocol_id} failed; previous result kept",
                entity_id=trial.protocol_id, trial_id=trial.id,
            )
            return None

        self._latest[trial.id] = result
        self.audit.record(
            Actor.USER, "Simulation",
            f"Ran Risk Simulation for {trial.protocol_id}. "
            f"Overall risk: {result.overall_risk_score} ({risk_band(result.overall_risk_score)}), "
            f"{len(result.scenarios)} scenarios",
            entity_id=trial.protocol_id, trial_id=trial.id,
        )
        return result
