import io

import jax.numpy as jnp

import bayes_integrals.utils as biutils

YAML_CONFIG = """

defaults:
    target:
        count: 0
        shape: 4.0
        rate: 1.0
    methods:
        output_dir: "./figures"
        rectangle:
            lower: 0.0
            upper: 12.0
            step: 0.5
        monte_carlo:
            num_samples: 10000
        gauss_hermite:
            num_points: 10

configs:
    -   target:
            defaults:
                name: "poisson-gamma"
            grid:
                -   shape: [2.0, 4.0]
        methods:
            defaults:
                monte_carlo.seed: 3
            grid:
                -   rectangle.step: [0.5, 0.25]
                    gauss_hermite.num_points: [5, 10]

                -   monte_carlo.num_samples: [100, 1000, 10000]

    -   skip: true
        target:
            grid:
                -   rate: [0.5, 2.0]

    -   target:
            defaults:
                count: 3
"""


def test_parsing():
    yaml_io = io.StringIO(YAML_CONFIG)
    configs = biutils.read_config_from_stream(yaml_io)

    assert len(configs) == 2 * (4 + 3) + 1

    first = configs[0]
    assert first["skip"] is False
    assert first["target"] == {
        "count": 0,
        "shape": 2.0,
        "rate": 1.0,
        "name": "poisson-gamma",
    }
    assert first["methods"]["rectangle"] == {"lower": 0.0, "upper": 12.0, "step": 0.5}
    assert first["methods"]["monte_carlo"] == {"num_samples": 10000, "seed": 3}
    assert first["methods"]["gauss_hermite"] == {"num_points": 5}
    assert not any("." in key for key in first["methods"])

    assert configs[4]["methods"]["monte_carlo"]["num_samples"] == 100
    assert configs[7]["target"]["shape"] == 4.0
    assert configs[-1]["target"]["count"] == 3
    assert configs[-1]["methods"]["rectangle"]["step"] == 0.5


def test_dot_keys_do_not_leak_between_configs():
    configs = biutils.read_config_from_stream(io.StringIO(YAML_CONFIG))
    steps = [c["methods"]["rectangle"]["step"] for c in configs[:4]]
    assert steps == [0.5, 0.5, 0.25, 0.25]


def test_merge_dot_keys_creates_missing_levels():
    merged = biutils._merge_dot_keys({"a.b.c": 1, "d": 2})
    assert merged == {"a": {"b": {"c": 1}}, "d": 2}


def test_to_float64():
    out = biutils.to_float64({"a": 1, "b": 2.5, "c": True, "d": "x"})
    assert out["a"].dtype == jnp.float64
    assert out["b"].dtype == jnp.float64
    assert out["c"] is True
    assert out["d"] == "x"
