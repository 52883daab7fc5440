import hydra
from hydra.core.config_store import ConfigStore
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from hetmanet.scenario_config import SweepConfig
from hetmanet.simulation.errors import ConfigurationError
from hetmanet.simulation.sweep import run_protocol_sweep
from hetmanet.utils.log import setup_logger

cs = ConfigStore.instance()
cs.store(name="sweep_config", node=SweepConfig)


@hydra.main(
    version_base="1.2",
    config_path="../config",
    config_name="sweep",
)
def main(cfg: DictConfig) -> None:
    """Main entry point with Hydra configuration."""
    schema = OmegaConf.structured(SweepConfig)
    cfg = OmegaConf.merge(schema, cfg)

    setup_logger(cfg.scenario.simulation.log_level)
    logger.info("Configuration:")
    logger.info(OmegaConf.to_yaml(cfg))

    config: SweepConfig = OmegaConf.to_object(cfg)

    try:
        rows = run_protocol_sweep(config)
    except ConfigurationError as e:
        logger.warning(f"Invalid configuration: {e}")
        return

    for row in rows:
        logger.info(
            f"{row.protocol} / mobility {row.mobility_type}: "
            f"rx={row.total_rx_packets} lost={row.total_lost_packets} "
            f"throughput={row.mean_throughput_mbps} Mbps"
        )


if __name__ == "__main__":
    main()
