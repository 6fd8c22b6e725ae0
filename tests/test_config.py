"""
Tests for stepper and package configuration.
"""

import pytest

from fieldtrace.stepping import StepperConfig, PIControlParams
from fieldtrace.utils.config import PackageConfig, configure, get_config, reset_config


def test_default_stepper_config():
    config = StepperConfig()
    assert config.dense_step_size == 1e-2
    assert config.max_step_attempts == 16
    assert config.absolute_tolerance == 1e-6
    assert config.relative_tolerance == 1e-6
    assert config.safety_factor == 0.9
    assert config.min_step_scale == 0.2
    assert config.max_step_scale == 10.0
    assert config.initial_step_size == 1e-4
    assert config.initial_error == 1e-4
    assert config.sudden_reversals_for_sink == 3
    assert config.use_pi_control is True
    assert config.min_step_scale < config.max_step_scale


@pytest.mark.parametrize("options", [
    {"dense_step_size": 0.0},
    {"dense_step_size": -1.0},
    {"absolute_tolerance": 0.0},
    {"relative_tolerance": -1e-6},
    {"min_step_scale": 0.0},
    {"max_step_scale": float("inf")},
    {"initial_step_size": float("nan")},
    {"safety_factor": 0.0},
    {"safety_factor": 1.5},
    {"initial_error": 0.0},
    {"initial_error": 2.0},
    {"min_step_scale": 5.0, "max_step_scale": 2.0},
    {"max_step_attempts": 0},
    {"max_step_attempts": 2.5},
    {"sudden_reversals_for_sink": 0},
    {"use_pi_control": "yes"},
])
def test_invalid_stepper_config_fails_at_construction(options):
    with pytest.raises(ValueError):
        StepperConfig(**options)


def test_equal_step_scales_allowed():
    config = StepperConfig(min_step_scale=1.0, max_step_scale=1.0)
    assert config.min_step_scale == config.max_step_scale


def test_stepper_config_from_dict_and_replace():
    config = StepperConfig.from_dict({"dense_step_size": 0.5, "use_pi_control": False})
    assert config.dense_step_size == 0.5
    assert config.use_pi_control is False
    assert config.max_step_attempts == 16

    changed = config.replace(max_step_attempts=4)
    assert changed.max_step_attempts == 4
    assert changed.dense_step_size == 0.5
    assert config.max_step_attempts == 16

    with pytest.raises(ValueError):
        config.replace(safety_factor=-1.0)

    assert StepperConfig.from_dict(config.to_dict()) == config


def test_stepper_config_from_dict_rejects_unknown_names():
    with pytest.raises(ValueError, match="dense_stepsize"):
        StepperConfig.from_dict({"dense_stepsize": 0.1})


def test_stepper_config_is_immutable():
    config = StepperConfig()
    with pytest.raises(AttributeError):
        config.dense_step_size = 1.0


def test_pi_control_params():
    pi = PIControlParams.activated(5)
    assert pi.k_i == pytest.approx(0.08)
    assert pi.k_p == pytest.approx(0.2 - 0.06)

    classic = PIControlParams.deactivated(5)
    assert classic.k_i == 0.0
    assert classic.k_p == pytest.approx(0.2)

    assert PIControlParams.for_config(StepperConfig(use_pi_control=False), 3) == PIControlParams.deactivated(3)
    assert PIControlParams.for_config(StepperConfig(), 3) == PIControlParams.activated(3)


def test_package_config_configure_and_reset():
    configure(verbose=True, n_workers=2, progress_style="simple")
    config = get_config()
    assert config.verbose is True
    assert config.n_workers == 2
    assert config.resolved_workers() == 2
    assert config.resolved_workers(3) == 3

    reset_config()
    config = get_config()
    assert config.verbose is False
    assert config.n_workers is None
    assert config.resolved_workers() == 1


def test_package_config_unknown_key_warns():
    with pytest.warns(UserWarning, match="Unknown configuration parameter"):
        configure(not_a_setting=1)


def test_rejected_configure_leaves_config_unchanged():
    configure(progress_style="simple")
    with pytest.raises(ValueError):
        configure(verbose=True, progress_style="bad")
    config = get_config()
    assert config.progress_style == "simple"
    assert config.verbose is False

    with pytest.raises(ValueError):
        configure(n_workers=0)
    assert get_config().n_workers is None


def test_package_config_validation():
    with pytest.raises(ValueError):
        PackageConfig(progress_style="fancy")
    with pytest.raises(ValueError):
        PackageConfig(dtype="float16")
    with pytest.raises(ValueError):
        PackageConfig(n_workers=0)


def test_system_info_keys():
    info = get_config().get_system_info()
    assert info["cpu_count"] >= 1
    assert "jax_available" in info
    assert info["current_config"]["dtype"] == "float64"
