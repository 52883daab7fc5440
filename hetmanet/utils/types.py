import typing as tp

from loguru import logger as _logger

LoguruLogger = type[_logger]

# (node_id, x, y, virtual time in seconds)
PositionSample = tuple[int, float, float, float]
LogLevel = tp.Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
