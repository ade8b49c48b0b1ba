import json
import logging

import pytest

from bayes_integrals import experiment

YAML_CONFIG = """
defaults:
    target:
        shape: 4.0
        rate: 1.0
    methods:
        output_dir: "{output_dir}"
        rectangle:
            lower: 0.0
            upper: 12.0
            step: 0.5
        monte_carlo:
            num_samples: 20000
            sample_sizes: [100, 1000]
            num_repeats: 3
        laplace:
            log_scale: {log_scale}
        gauss_hermite:
            num_points: 10
            max_points: 8

configs:
    -   target:
            defaults:
                name: "baseline"
    -   target:
            defaults:
                name: "broken"
                shape: -1.0
"""


@pytest.fixture
def config_file(tmp_path):
    def make(log_scale: bool = False):
        path = tmp_path / "runs.yaml"
        out = tmp_path / "out"
        path.write_text(
            YAML_CONFIG.format(output_dir=out, log_scale=str(log_scale).lower())
        )
        return path, out

    return make


def test_main_without_config_prints_help(capsys):
    experiment.main([])
    assert "usage" in capsys.readouterr().out


def test_print_config(config_file, capsys):
    path, _ = config_file()
    experiment.main(["--config", str(path), "--print-config"])
    assert "baseline" in capsys.readouterr().out


def test_run_writes_summary_and_figures(config_file, caplog):
    path, out = config_file()
    with caplog.at_level(logging.INFO):
        experiment.main(["--config", str(path)])

    summaries = list(out.glob("baseline_*_summary.json"))
    assert len(summaries) == 1
    data = json.loads(summaries[0].read_text())
    assert abs(data["estimates"]["exact"] - 0.0625) < 1e-12
    assert data["errors"]["rectangle"] < 1e-3

    for suffix in (
        "rectangle",
        "monte_carlo",
        "monte_carlo_convergence",
        "laplace",
        "gauss_hermite",
    ):
        assert len(list(out.glob(f"baseline_*_{suffix}.png"))) == 1

    # the broken config is reported and skipped
    assert "Error in experiment 1" in caplog.text
    assert not list(out.glob("broken_*"))


def test_single_run_without_plots(config_file):
    path, out = config_file(log_scale=True)
    experiment.main(["--config", str(path), "--run", "0", "--no-plots"])
    assert len(list(out.glob("*_summary.json"))) == 1
    assert not list(out.glob("*.png"))
