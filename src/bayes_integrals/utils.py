import itertools
from copy import deepcopy
from io import TextIOWrapper

import jax
import jax.numpy as jnp
import numpy as np
import yaml

SECTIONS = ("target", "methods")


def to_float64(x):
    """Cast every numeric leaf of a pytree to a float64 jax array.

    tfp takes its dtype from the parameters, python floats give float32.
    """

    def _to_float64_leave(x):
        if isinstance(x, bool):
            return x
        if isinstance(x, (jax.Array, np.ndarray, float, int)):
            return jnp.asarray(x, dtype=jnp.float64)
        return x

    return jax.tree.map(_to_float64_leave, x)


def _merge_dot_keys(config: dict) -> dict:
    """merge keys with dot notation into the dictionary"""

    if not any(key for key in config.keys() if "." in key):
        return config

    # nested dictionaries are shared between grid combinations
    config = deepcopy(config)

    keys_to_delete = []
    for key, value in list(config.items()):
        if "." not in key:
            continue

        *parents, last_key = key.split(".")
        current = config
        for k in parents:
            current = current.setdefault(k, {})

        match current.get(last_key):
            case dict():
                current[last_key].update(value)
            case _:
                current[last_key] = value

        keys_to_delete.append(key)

    for key in keys_to_delete:
        del config[key]

    return config


def _expand_grid(section_raw: dict | None, defaults: dict) -> list[dict]:
    section_raw = section_raw or {}
    grid_params = section_raw.get("grid") or []

    defaults = defaults.copy()
    defaults.update(section_raw.get("defaults") or {})

    if not grid_params:
        return [defaults]

    # every grid entry contributes the cartesian product of its value lists
    grid_dicts = []
    for grid_entry in grid_params:
        for combination in itertools.product(*grid_entry.values()):
            grid_dicts.append(dict(zip(grid_entry.keys(), combination)))

    configurations = []
    for comb in grid_dicts:
        config = defaults.copy()
        config.update(comb)
        configurations.append(config)

    return configurations


def _build_config(one_config_raw: dict, defaults: dict) -> list[dict]:
    expanded = {
        section: [
            _merge_dot_keys(config)
            for config in _expand_grid(
                one_config_raw.get(section), defaults.get(section, {})
            )
        ]
        for section in SECTIONS
    }

    all_configs = []
    for combination in itertools.product(*(expanded[s] for s in SECTIONS)):
        config = dict(zip(SECTIONS, combination))
        config["skip"] = one_config_raw.get("skip", False)
        all_configs.append(config)

    return all_configs


def read_config(filepath: str) -> list[dict]:
    with open(filepath) as f:
        return read_config_from_stream(f)


def read_config_from_stream(f: TextIOWrapper) -> list[dict]:
    config_raw = yaml.safe_load(f)

    defaults = config_raw.get("defaults") or {}
    all_configs = []
    for one_config_raw in config_raw.get("configs") or [{}]:
        for config in _build_config(one_config_raw, defaults):
            if not config["skip"]:
                all_configs.append(config)

    return all_configs
