"""
Trial Catalog - the fixed set of trials supplied at startup.

Read-only reference data: every other component looks trials up here to
scope its work and to fetch the `ai_context` grounding text.
"""

from typing import Dict, Iterable, List, Optional

from backend.trialsight.context import Trial, TrialStatus
from backend.trialsight.errors import NotFoundError


TRIALS: List[Trial] = [
    Trial(
        id="trial_1",
        protocol_id="633765",
        name="SECURE",
        phase="III",
        description="Secondary Prevention of Cardiovascular Disease in the Elderly",
        investigator="Dr. Valentin Fuster",
        status=TrialStatus.RECRUITING,
        target_recruitment=2514,
        current_recruitment=1450,
        recruitment_data=[
            {"label": "Spain", "actual": 450, "target": 500},
            {"label": "Italy", "actual": 320, "target": 400},
            {"label": "Germany", "actual": 210, "target": 350},
            {"label": "Poland", "actual": 180, "target": 200},
            {"label": "Hungary", "actual": 150, "target": 150},
            {"label": "France", "actual": 90, "target": 150},
            {"label": "Czech", "actual": 80, "target": 100},
        ],
        endpoint_data=[
            {"name": "CV Death", "value": 12},
            {"name": "Non-fatal MI", "value": 28},
            {"name": "Ischemic Stroke", "value": 15},
            {"name": "Revasc", "value": 45},
        ],
        adherence_data=[
            {"timepoint": "M6", "armA": 78, "armB": 62},
            {"timepoint": "M12", "armA": 75, "armB": 58},
            {"timepoint": "M18", "armA": 74, "armB": 55},
            {"timepoint": "M24", "armA": 72, "armB": 50},
        ],
        ai_context=(
            "Protocol: SECURE (Secondary Prevention of CVD in Elderly). "
            "Drug: Polypill (Aspirin/Atorvastatin/Ramipril) vs Usual Care. "
            "Pop: >65yo, Post-MI. Key Risks: Hypotension, Renal Dysfunction, Bleeding. "
            "Adherence Measure: Morisky-8."
        ),
    ),
    Trial(
        id="trial_2",
        protocol_id="NCT07286578",
        name="AF-PREVENT",
        phase="II",
        description="Impact of Early Ablation in Atrial Fibrillation - Spain Cohort",
        investigator="Dr. Maria Gonzalez",
        status=TrialStatus.RECRUITING,
        target_recruitment=300,
        current_recruitment=45,
        recruitment_data=[
            {"label": "Madrid", "actual": 20, "target": 100},
            {"label": "Barcelona", "actual": 15, "target": 100},
            {"label": "Valencia", "actual": 10, "target": 100},
        ],
        endpoint_data=[
            {"name": "AF Recurrence", "value": 5},
            {"name": "Bleeding", "value": 2},
            {"name": "Stroke", "value": 0},
        ],
        adherence_data=[
            {"timepoint": "M1", "armA": 98, "armB": 95},
            {"timepoint": "M3", "armA": 95, "armB": 90},
            {"timepoint": "M6", "armA": 92, "armB": 85},
        ],
        ai_context=(
            "Protocol: AF-PREVENT (NCT07286578). "
            "Intervention: Cryoablation vs Antiarrhythmic Drugs. Pop: Paroxysmal AF, Naive. "
            "Key Risks: Tamponade, Pulmonary Vein Stenosis. "
            "Primary Endpoint: Freedom from Atrial Arrhythmia >30s."
        ),
    ),
]


class TrialCatalog:
    """Immutable lookup over the trials loaded at startup."""

    def __init__(self, trials: Iterable[Trial] = ()):
        self._trials: Dict[str, Trial] = {}
        for trial in trials:
            if trial.id in self._trials:
                raise ValueError(f"Duplicate trial id in catalog: {trial.id}")
            self._trials[trial.id] = trial

    @classmethod
    def default(cls) -> "TrialCatalog":
        return cls(TRIALS)

    def __contains__(self, trial_id: object) -> bool:
        return trial_id in self._trials

    def __len__(self) -> int:
        return len(self._trials)

    def get(self, trial_id: str) -> Trial:
        trial = self._trials.get(trial_id)
        if trial is None:
            raise NotFoundError(f"Unknown trial: {trial_id}")
        return trial

    def find(self, trial_id: Optional[str]) -> Optional[Trial]:
        return self._trials.get(trial_id) if trial_id else None

    def list(self) -> List[Trial]:
        return list(self._trials.values())

    def first(self) -> Optional[Trial]:
        return next(iter(self._trials.values()), None)
