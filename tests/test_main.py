"""
Smoke test for the simulation runner
"""

import yaml

from swerveio import main as runner
from swerveio.utils.config_loader import ModuleIndex


def test_runner_drives_simulated_modules(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    with open(config_path, 'w') as f:
        yaml.safe_dump({'simulation_mode': False, 'drive': {'control_rate_hz': 50.0}}, f)

    # Keep pytest's log capture in place
    monkeypatch.setattr(runner, "setup_logging", lambda config: None)

    with runner.SwerveIO(config_path=str(config_path), simulation=True) as app:
        assert app.config.simulation_mode is True
        assert set(app.modules) == set(ModuleIndex)

        app.start()
        app.run(duration_s=0.3)

        metrics = app.control_timing.get_metrics()

    assert metrics['total_iterations'] > 5
    assert app.running is False
    assert not app.sampling_engine.thread.is_alive()
