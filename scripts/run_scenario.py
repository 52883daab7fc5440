import hydra
from hydra.core.config_store import ConfigStore
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from hetmanet.scenario_config import ScenarioConfig
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.scenario import run_scenario
from hetmanet.utils.log import setup_logger

cs = ConfigStore.instance()
cs.store(name="scenario_config", node=ScenarioConfig)


@hydra.main(
    version_base="1.2",
    config_path="../config",
    config_name="scenario",
)
def main(cfg: DictConfig) -> None:
    """Main entry point with Hydra configuration."""
    # Validate the overrides against the dataclass schema
    schema = OmegaConf.structured(ScenarioConfig)
    cfg = OmegaConf.merge(schema, cfg)

    setup_logger(cfg.simulation.log_level)
    logger.info("Configuration:")
    logger.info(OmegaConf.to_yaml(cfg))

    config: ScenarioConfig = OmegaConf.to_object(cfg)

    try:
        report = run_scenario(config)
    except ConfigurationError as e:
        logger.warning(f"Invalid configuration: {e}")
        return

    logger.info(
        f"{report.protocol}: {len(report.flows)} flows, "
        f"{report.total_rx_packets} received, {report.total_lost_packets} lost"
    )


if __name__ == "__main__":
    main()
