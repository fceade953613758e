"""
Trial catalog and trial record helpers.
"""

import pytest

from backend.trialsight.catalog import TrialCatalog, TRIALS
from backend.trialsight.context import Trial
from backend.trialsight.errors import NotFoundError, ValidationError


class TestCatalogLookup:
    def test_default_catalog_has_both_trials(self, catalog):
        assert len(catalog) == 2
        assert [t.id for t in catalog.list()] == ["trial_1", "trial_2"]
        assert catalog.first().name == "SECURE"

    def test_get_unknown_trial(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.get("trial_99")

    def test_unknown_trial_is_a_validation_error(self, catalog):
        with pytest.raises(ValidationError):
            catalog.get("nope")

    def test_find_returns_none(self, catalog):
        assert catalog.find("trial_99") is None
        assert catalog.find(None) is None
        assert catalog.find("trial_2").protocol_id == "NCT07286578"

    def test_contains(self, catalog):
        assert "trial_1" in catalog
        assert "trial_3" not in catalog

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            TrialCatalog([TRIALS[0], TRIALS[0]])


class TestRecruitment:
    def test_af_prevent_is_fifteen_percent(self, catalog):
        assert catalog.get("trial_2").percent_recruited() == 15

    def test_secure_rounds_half_up(self, catalog):
        # 1450 / 2514 = 57.68%
        assert catalog.get("trial_1").percent_recruited() == 58

    def test_exact_half_rounds_up(self):
        trial = Trial(id="t", protocol_id="p", name="n", phase="I",
                      target_recruitment=8, current_recruitment=1)
        assert trial.percent_recruited() == 13

    def test_zero_target(self):
        trial = Trial(id="t", protocol_id="p", name="n", phase="I")
        assert trial.percent_recruited() == 0

    def test_labels(self, catalog):
        assert catalog.get("trial_2").recruitment_label() == "lagging"
        assert catalog.get("trial_1").recruitment_label() == "on track"

    def test_reply_context_line(self, catalog):
        line = catalog.get("trial_2").reply_context()
        assert line.startswith("Trial: AF-PREVENT. Protocol ID: NCT07286578. Description: ")


class TestTrialRecord:
    def test_trials_are_hashable(self, catalog):
        trials = {catalog.get("trial_1"), catalog.get("trial_2")}
        assert len(trials) == 2

    def test_chart_series_are_tuples(self, catalog):
        secure = catalog.get("trial_1")
        assert isinstance(secure.recruitment_data, tuple)
        assert secure.recruitment_data[0]["label"] == "Spain"

    def test_list_input_is_normalized(self):
        trial = Trial(id="t", protocol_id="p", name="n", phase="I",
                      endpoint_data=[{"name": "Stroke", "value": 0}])
        assert trial.endpoint_data == ({"name": "Stroke", "value": 0},)
        hash(trial)
