"""Tests for configuration loading and the command-line runs."""

import json
import math
from pathlib import Path
import pytest
import pandas as pd

from cnveval.config import EvaluationConfig
from cnveval.exceptions import ConfigurationError
from cnveval.genomics.calls import SimulationType
from cnveval.genomics.loader import CallSetLoader

import main

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


class TestEvaluationConfig:
    """Tests for EvaluationConfig class."""

    def test_defaults(self):
        """Test built-in defaults."""
        config = EvaluationConfig()

        assert config.max_rare_freq == 0.01
        assert config.simulation_type == SimulationType.DOWNSAMPLE
        assert config.min_bin_count == 3
        assert config.window_size == 10000000
        assert config.target_filter().max_targets == math.inf
        assert config.size_filter().max_size == 10 ** 7

    def test_default_yaml(self):
        """Test the shipped configuration matches the defaults."""
        assert EvaluationConfig.from_yaml(DEFAULT_CONFIG) == EvaluationConfig()

    def test_from_yaml(self, tmp_path):
        """Test loading the evaluation section of a YAML file."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "evaluation:\n"
            "  simulation_type: replace\n"
            "  size_range: [3, 6]\n"
            "  targets_range: [1, .inf]\n"
        )

        config = EvaluationConfig.from_yaml(path)

        assert config.simulation_type == SimulationType.REPLACE
        assert config.size_filter().min_size == 1000
        assert config.target_filter().min_targets == 1
        assert config.target_filter().max_targets == math.inf

    def test_infinity_string(self):
        """Test an unbounded target range can be spelled out."""
        config = EvaluationConfig.from_dict({"targets_range": [0, "Infinity"]})
        assert config.targets_range == [0, math.inf]

    def test_negative_upper_target_bound(self):
        """Test a negative upper target bound means no upper bound."""
        config = EvaluationConfig.from_dict({"targets_range": [0, -1]})

        assert config.targets_range == [0, math.inf]
        assert config.target_filter().max_targets == math.inf
        assert config.target_filter().contains(5000)

    def test_unknown_key(self):
        """Test misspelled keys are reported."""
        with pytest.raises(ConfigurationError, match="max_freq"):
            EvaluationConfig.from_dict({"max_freq": 0.05})

    def test_invalid_values(self):
        """Test out-of-range values are rejected."""
        with pytest.raises(ConfigurationError):
            EvaluationConfig(simulation_type="simulate")
        with pytest.raises(ConfigurationError):
            EvaluationConfig(max_rare_freq=1.5)
        with pytest.raises(ConfigurationError):
            EvaluationConfig(window_size=0)
        with pytest.raises(ConfigurationError):
            EvaluationConfig(size_range=[1, 2, 3])

    def test_configuration_error_is_value_error(self):
        """Test callers catching ValueError also see configuration errors."""
        with pytest.raises(ValueError):
            EvaluationConfig(min_bin_count=0)

    def test_reference(self, tmp_path):
        """Test picking the chromosome table."""
        assert EvaluationConfig().reference().build == "hg19"

        sizes = tmp_path / "toy.chrom.sizes"
        sizes.write_text("chr1\t1000\nchr2\t500\n")
        reference = EvaluationConfig(chrom_sizes=str(sizes), genome_build="toy").reference()
        assert reference.names == ["1", "2"]

        with pytest.raises(ConfigurationError):
            EvaluationConfig(genome_build="hg38").reference()


@pytest.fixture
def dataset(tmp_path):
    """A one-run dataset written as a report JSON file."""
    records = {
        "xhmm": [
            {"chr": "1", "start": 1000, "end": 5000, "quality": 90, "sample": "S1",
             "targets": 3, "targetBp": 600, "spanningFreq": 0, "truth": True},
            {"chr": "1", "start": 20000, "end": 21000, "quality": 40, "sample": "S2",
             "targets": 1, "targetBp": 100, "spanningFreq": 0},
            {"chr": "2", "start": 30000, "end": 31000, "quality": 20, "sample": "S1",
             "targets": 1, "targetBp": 100, "spanningFreq": 0.2},
        ],
        "truth": [
            {"chr": "1", "start": 1000, "end": 5000, "sample": "S1", "targets": 3, "targetBp": 600},
            {"chr": "1", "start": 80000, "end": 90000, "sample": "S2", "targets": 4, "targetBp": 800},
        ],
    }
    path = tmp_path / "run1" / "cnv_calls.js"
    path.parent.mkdir()
    path.write_text("cnv_calls = " + json.dumps(records) + ";")
    return CallSetLoader().load_runs([path])


class TestRuns:
    """Tests for the analysis runs writing result files."""

    def test_run_roc(self, dataset, tmp_path):
        """Test ROC table and summary are written."""
        main.run_roc(dataset, tmp_path, EvaluationConfig())

        df = pd.read_csv(tmp_path / "roc_curves.tsv", sep="\t")
        assert list(df["true_positives"]) == [1, 1, 1]
        assert list(df["false_positives"]) == [0, 1, 1]

        summary = json.loads((tmp_path / "roc_summary.json").read_text())
        assert summary["truth_count"] == 2
        assert summary["callers"]["xhmm"]["sensitivity"] == 0.5

    def test_run_distribution(self, dataset, tmp_path):
        """Test genome-wide and drill-down tables skip common calls."""
        main.run_distribution(dataset, tmp_path, EvaluationConfig(), ["2"])

        df = pd.read_csv(tmp_path / "genome_distribution.tsv", sep="\t", dtype={"chromosome": str})
        assert df["xhmm"].sum() == 2
        assert "truth" not in df.columns

        drilldown = pd.read_csv(tmp_path / "genome_distribution.2.tsv", sep="\t")
        assert drilldown["xhmm"].sum() == 0

    def test_run_sample_counts(self, dataset, tmp_path):
        """Test run suffixes are folded into one sample."""
        main.run_sample_counts(dataset, tmp_path)

        df = pd.read_csv(tmp_path / "cnvs_by_sample.tsv", sep="\t", index_col="sample")
        assert df.loc["S1", "xhmm"] == 2
        assert df.loc["S2", "xhmm"] == 1

    def test_run_calibration_and_sensitivity(self, dataset, tmp_path):
        """Test the remaining runs write their tables."""
        config = EvaluationConfig(min_bin_count=1)
        main.run_calibration(dataset, tmp_path, config)
        main.run_sensitivity(dataset, tmp_path, config)

        assert (tmp_path / "qscore_calibration.xhmm.tsv").exists()
        for name in ("targets", "target_bp", "size"):
            assert (tmp_path / f"sensitivity_by_{name}.tsv").exists()
