"""Tests for persisted generation state."""

import json

import pytest

from guardgen.errors import StateError
from guardgen.state import STATE_VERSION, GenerationState, load_state, save_state


def _state():
    state = GenerationState()
    state.set_baselines("Panel.tsx", {"props": "  a, b\n", "logic": "  x();\n"})
    state.tracker.record("Panel.tsx", "props", ["schema.fields"])
    state.tracker.record("Panel.tsx", "logic", [])
    return state


class TestGenerationState:
    def test_baselines_for_returns_copy(self):
        state = _state()
        b = state.baselines_for("Panel.tsx")
        b["props"] = "changed"
        assert state.baselines_for("Panel.tsx")["props"] == "  a, b\n"
        assert state.baselines_for("missing.ts") == {}

    def test_set_baseline(self):
        state = _state()
        state.set_baseline("new.ts", "m", "x\n")
        assert state.baselines_for("new.ts") == {"m": "x\n"}

    def test_forget(self):
        state = _state()
        state.forget("Panel.tsx")
        assert state.baselines == {}
        assert len(state.tracker) == 0

    def test_to_dict(self):
        data = _state().to_dict()
        assert data["version"] == STATE_VERSION
        assert data["dependencies"] == [["schema.fields", "Panel.tsx", "props"]]
        assert list(data["baselines"]["Panel.tsx"]) == ["logic", "props"]


class TestLoadSave:
    def test_round_trip(self, tmp_path):
        path = tmp_path / ".guardgen" / "state.json"
        save_state(_state(), path)
        assert path.read_text().endswith("}\n")
        loaded = load_state(path)
        assert loaded.baselines == _state().baselines
        assert loaded.tracker.affected({"schema"}) == {("Panel.tsx", "props")}

    def test_missing_file_is_empty(self, tmp_path):
        state = load_state(tmp_path / "absent.json")
        assert state.baselines == {}
        assert len(state.tracker) == 0

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StateError, match="Cannot read"):
            load_state(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[]")
        with pytest.raises(StateError):
            load_state(path)

    def test_wrong_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99}))
        with pytest.raises(StateError, match="Unsupported state version"):
            load_state(path)

    def test_malformed_triple(self):
        with pytest.raises(StateError, match="Malformed"):
            GenerationState.from_dict({"dependencies": [["only", "two"]]})
