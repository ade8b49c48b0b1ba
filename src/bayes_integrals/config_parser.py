import json
import os
from copy import deepcopy
from hashlib import sha256
from typing import Any, NamedTuple

CURVATURE_METHODS = {"autodiff", "finite_difference"}


class ConfigParsingError(Exception):
    """A meaningful error to raise."""

    pass


class TargetSpec(NamedTuple):
    """The Poisson-Gamma integrand.

    Attributes:
    -----------
    count: int
        The observed Poisson count.

    shape: float
        Shape of the Gamma prior on the intensity.

    rate: float
        Rate of the Gamma prior on the intensity.
    """

    count: int
    shape: float
    rate: float


class RectangleSpec(NamedTuple):
    lower: float
    upper: float
    step: float


class MonteCarloSpec(NamedTuple):
    num_samples: int
    seed: int
    batch_size: int | None
    sample_sizes: tuple[int, ...]
    num_repeats: int


class LaplaceSpec(NamedTuple):
    """Settings for the Laplace approximation.

    Attributes:
    -----------
    lower, upper: float | None
        Bounds of the mode search for the normal approximation. When missing,
        the bounds are derived from the Gamma prior.

    method: str
        How the curvature is computed, "autodiff" or "finite_difference".

    log_scale: bool
        Whether Gauss-Hermite quadrature is centred on the log-normal
        approximation instead of the normal one.
    """

    lower: float | None
    upper: float | None
    method: str
    log_scale: bool


class GaussHermiteSpec(NamedTuple):
    num_points: int
    max_points: int


class MethodsSpec(NamedTuple):
    rectangle: RectangleSpec
    monte_carlo: MonteCarloSpec
    laplace: LaplaceSpec
    gauss_hermite: GaussHermiteSpec


class ParsedRunConfig(NamedTuple):
    """Validated configs for one run.

    Attributes:
    -----------
    name: str
        Human readable name of the run, may be empty.

    description: str
        Free text description of the run, may be empty.

    output_dir: str
        Directory receiving figures and the json summary.

    run_hash: str
        sha256 of the raw config, stable across key order.

    target: TargetSpec
        The integrand.

    methods: MethodsSpec
        Settings for every approximation.
    """

    name: str
    description: str
    output_dir: str
    run_hash: str
    target: TargetSpec
    methods: MethodsSpec

    @property
    def output_stem(self) -> str:
        prefix = f"{self.name}_" if self.name else ""
        return os.path.join(self.output_dir, f"{prefix}{self.run_hash[:8]}")


def validate_type_and_bounds(
    *args: tuple[Any, ...],
    dtype: type | tuple[type, ...],
    lower: int | float | None = None,
    upper: int | float | None = None,
    equal: list[str] | set[str] | None = None,
    length: int | None = None,
) -> None:
    """Validate the types and bounds of arguments.

    Bounds are inclusive. If equal is not None, the values checked must be in
    the set of valid arguments provided for the check. Length is the number of
    arguments passed in args. Booleans never pass as numbers.
    """

    def is_equal(value: Any) -> bool:
        if equal is None:
            return True
        return value in equal

    def is_in_bounds(value: Any) -> bool:
        lb = lower is None or value >= lower
        ub = upper is None or value <= upper
        return lb and ub

    def is_type(value: Any) -> bool:
        if isinstance(value, bool) and dtype is not bool:
            return False
        return isinstance(value, dtype)

    if length:
        if len(args) != length:
            raise ConfigParsingError(
                f"Expected {length} arguments. Got {len(args)} instead."
            )

    for arg in args:
        if not is_type(arg):
            raise ConfigParsingError(
                f"Argument must be a {dtype}. Got {arg} of type {type(arg)} instead."
            )
        if not (is_in_bounds(arg) and is_equal(arg)):
            raise ConfigParsingError(
                f"Argument must be a {dtype} between {lower} and {upper}"
                + (f" and one of {sorted(equal)}" if equal is not None else "")
                + f". Got {arg} instead."
            )


def get_key(key: str, config: dict):
    try:
        return config.pop(key)
    except KeyError:
        raise ConfigParsingError(f"Missing key: {key}")


def get_section(key: str, config: dict) -> dict:
    section = get_key(key, config)
    if not isinstance(section, dict):
        raise ConfigParsingError(f"Section {key} must be a mapping, got {section!r}")
    return section


def ensure_empty(config: dict, where: str) -> None:
    if config.keys():
        raise ConfigParsingError(f"Unrecognized keys in {where}: {list(config)}")


def hash_encodings(config: str | dict[str, Any]):
    config_str = json.dumps(config, sort_keys=True)
    config_encoding = config_str.encode("utf-8")
    return sha256(config_encoding).hexdigest()


def _as_float(value: Any) -> Any:
    # yaml reads "12" as an int, which is a perfectly good float bound
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def parse_target(config: dict) -> TargetSpec:
    count = config.pop("count", 0)
    shape = _as_float(get_key("shape", config))
    rate = _as_float(get_key("rate", config))
    for key in ("name", "desc", "tags"):
        config.pop(key, None)
    ensure_empty(config, "target")

    validate_type_and_bounds(count, dtype=int, lower=0)
    validate_type_and_bounds(shape, rate, dtype=float)
    if not (shape > 0 and rate > 0):
        raise ConfigParsingError(
            f"shape and rate must be positive. Got shape={shape}, rate={rate}."
        )

    return TargetSpec(count=count, shape=shape, rate=rate)


def parse_rectangle(config: dict) -> RectangleSpec:
    lower = _as_float(get_key("lower", config))
    upper = _as_float(get_key("upper", config))
    step = _as_float(get_key("step", config))
    ensure_empty(config, "methods.rectangle")

    validate_type_and_bounds(lower, upper, step, dtype=float)
    if not upper > lower:
        raise ConfigParsingError(f"upper must exceed lower. Got [{lower}, {upper}].")
    if not step > 0:
        raise ConfigParsingError(f"step must be positive. Got {step}.")

    return RectangleSpec(lower=lower, upper=upper, step=step)


def parse_monte_carlo(config: dict) -> MonteCarloSpec:
    num_samples = get_key("num_samples", config)
    seed = config.pop("seed", 0)
    batch_size = config.pop("batch_size", None)
    sample_sizes = config.pop("sample_sizes", [100, 1_000, 10_000, 100_000])
    num_repeats = config.pop("num_repeats", 20)
    ensure_empty(config, "methods.monte_carlo")

    if not isinstance(sample_sizes, list | tuple):
        raise ConfigParsingError(f"sample_sizes must be a list, got {sample_sizes!r}")
    validate_type_and_bounds(num_samples, dtype=int, lower=1)
    validate_type_and_bounds(seed, dtype=int, lower=0)
    if batch_size is not None:
        validate_type_and_bounds(batch_size, dtype=int, lower=1)
    validate_type_and_bounds(*sample_sizes, dtype=int, lower=1)
    validate_type_and_bounds(num_repeats, dtype=int, lower=2)

    return MonteCarloSpec(
        num_samples=num_samples,
        seed=seed,
        batch_size=batch_size,
        sample_sizes=tuple(sample_sizes),
        num_repeats=num_repeats,
    )


def parse_laplace(config: dict) -> LaplaceSpec:
    lower = _as_float(config.pop("lower", None))
    upper = _as_float(config.pop("upper", None))
    method = config.pop("method", "autodiff")
    log_scale = config.pop("log_scale", False)
    ensure_empty(config, "methods.laplace")

    if (lower is None) != (upper is None):
        raise ConfigParsingError("Laplace bounds need both lower and upper or none.")
    if lower is not None:
        validate_type_and_bounds(lower, upper, dtype=float)
        if not upper > lower:
            raise ConfigParsingError(
                f"upper must exceed lower. Got [{lower}, {upper}]."
            )
    validate_type_and_bounds(method, dtype=str, equal=CURVATURE_METHODS)
    validate_type_and_bounds(log_scale, dtype=bool)

    return LaplaceSpec(lower=lower, upper=upper, method=method, log_scale=log_scale)


def parse_gauss_hermite(config: dict) -> GaussHermiteSpec:
    num_points = get_key("num_points", config)
    max_points = config.pop("max_points", 50)
    ensure_empty(config, "methods.gauss_hermite")

    validate_type_and_bounds(num_points, max_points, dtype=int, lower=1)

    return GaussHermiteSpec(num_points=num_points, max_points=max_points)


def parse_methods(config: dict) -> MethodsSpec:
    return MethodsSpec(
        rectangle=parse_rectangle(get_section("rectangle", config)),
        monte_carlo=parse_monte_carlo(get_section("monte_carlo", config)),
        laplace=parse_laplace(config.pop("laplace", None) or {}),
        gauss_hermite=parse_gauss_hermite(get_section("gauss_hermite", config)),
    )


def parse_run_config(config: dict) -> ParsedRunConfig:
    """Parser for a single run as produced by ``utils.read_config``."""

    config_hash = hash_encodings(config)
    config = deepcopy(config)
    config.pop("skip", None)

    target_config = get_section("target", config)
    methods_config = get_section("methods", config)
    ensure_empty(config, "run")

    name = "-".join(
        str(section["name"])
        for section in (target_config, methods_config)
        if section.get("name")
    )
    description = " - ".join(
        section["desc"].format(**section)
        for section in (target_config, methods_config)
        if section.get("desc")
    )

    output_dir = methods_config.pop("output_dir", "./figures")
    validate_type_and_bounds(output_dir, dtype=str)
    for key in ("name", "desc", "tags"):
        methods_config.pop(key, None)

    target = parse_target(target_config)
    methods = parse_methods(methods_config)
    ensure_empty(methods_config, "methods")

    return ParsedRunConfig(
        name=name,
        description=description,
        output_dir=output_dir,
        run_hash=config_hash,
        target=target,
        methods=methods,
    )
