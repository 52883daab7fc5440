"""
Mobility profile selection.

Stations are placed on a row-first grid and then given a bounded random
walk at one of two constant speeds. The access point keeps a constant
position whatever the mode.
"""

import csv
import typing as tp
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from hetmanet.scenario_config import MobilityConfig
from hetmanet.simulation.topology import WIFI_AP, WIFI_STATIONS, Topology
from hetmanet.utils.types import PositionSample

FAST = 0
SLOW = 1


class MobilityKind(Enum):
    CONSTANT_POSITION = "constant_position"
    # Grid placement without any movement policy
    GRID_ONLY = "grid_only"
    RANDOM_WALK = "random_walk"


@dataclass(frozen=True)
class MobilityProfile:
    """Kinematic policy of a node group, fixed before the run starts."""

    kind: MobilityKind
    speed: tp.Optional[float] = None
    # (xmin, xmax, ymin, ymax)
    bounds: tp.Optional[tp.Tuple[float, float, float, float]] = None

    @property
    def moves(self) -> bool:
        return self.kind is MobilityKind.RANDOM_WALK


@dataclass(frozen=True)
class GridLayout:
    min_x: float = 0.0
    min_y: float = 0.0
    delta_x: float = 5.0
    delta_y: float = 10.0
    width: int = 3

    def position(self, index: int) -> tp.Tuple[float, float]:
        """Row-first position of the index-th allocated slot."""
        row, col = divmod(index, self.width)
        return self.min_x + col * self.delta_x, self.min_y + row * self.delta_y


@dataclass(frozen=True)
class MobilityAssignment:
    group: str
    node_ids: tp.Tuple[int, ...]
    profile: MobilityProfile


@dataclass(frozen=True)
class MobilityPlan:
    """
    Grid shared by all assignments, consumed in assignment order.
    """

    grid: GridLayout
    assignments: tp.Tuple[MobilityAssignment, ...]

    def profile_of(self, group: str) -> tp.Optional[MobilityProfile]:
        for assignment in self.assignments:
            if assignment.group == group:
                return assignment.profile
        return None

    def initial_positions(self) -> tp.Dict[int, tp.Tuple[float, float]]:
        positions = {}
        slot = 0
        for assignment in self.assignments:
            for node_id in assignment.node_ids:
                positions[node_id] = self.grid.position(slot)
                slot += 1
        return positions


class MobilityProfileSelector:
    """
    Chooses the mobility profile of each wireless group.
    """

    def __init__(self, config: tp.Optional[MobilityConfig] = None):
        self.config = config or MobilityConfig()

    @property
    def grid(self) -> GridLayout:
        return GridLayout(
            min_x=self.config.grid_min_x,
            min_y=self.config.grid_min_y,
            delta_x=self.config.grid_delta_x,
            delta_y=self.config.grid_delta_y,
            width=self.config.grid_width,
        )

    def station_profile(self, mobility_type: int) -> MobilityProfile:
        bounds = tuple(self.config.bounds)
        if mobility_type == FAST:
            logger.info(f"Node moves fast: {self.config.fast_speed}m/s (Car)")
            return MobilityProfile(
                MobilityKind.RANDOM_WALK, speed=self.config.fast_speed, bounds=bounds
            )
        if mobility_type == SLOW:
            logger.info(f"Node moves slow: {self.config.slow_speed}m/s (Human)")
            return MobilityProfile(
                MobilityKind.RANDOM_WALK, speed=self.config.slow_speed, bounds=bounds
            )

        logger.warning(
            f"Unknown mobility type {mobility_type}, stations keep their grid position"
        )
        return MobilityProfile(MobilityKind.GRID_ONLY)

    def select(self, topology: Topology, mobility_type: int) -> MobilityPlan:
        """
        Build the mobility plan for the stations and the access point.

        Args:
            topology: Topology whose wireless groups get a profile
            mobility_type: 0 (fast) or 1 (slow)

        Returns:
            MobilityPlan with stations first, then the access point
        """
        stations = topology.group(WIFI_STATIONS)
        ap = topology.group(WIFI_AP)

        assignments = []
        if len(stations) > 0:
            assignments.append(
                MobilityAssignment(
                    WIFI_STATIONS, stations.node_ids, self.station_profile(mobility_type)
                )
            )
        assignments.append(
            MobilityAssignment(
                WIFI_AP, ap.node_ids, MobilityProfile(MobilityKind.CONSTANT_POSITION)
            )
        )
        return MobilityPlan(grid=self.grid, assignments=tuple(assignments))


@dataclass
class MobilityTrace:
    """
    Course-change samples of the observed nodes.
    """

    samples: tp.List[PositionSample] = field(default_factory=list)

    def record(self, node_id: int, x: float, y: float, time: float) -> None:
        logger.info(f"/NodeList/{node_id}/$ns3::MobilityModel/CourseChange x = {x}, y = {y}")
        self.samples.append((node_id, x, y, time))

    def positions_of(self, node_id: int) -> tp.List[tp.Tuple[float, float]]:
        return [(x, y) for n, x, y, _ in self.samples if n == node_id]

    def export_csv(self, output_path: str) -> None:
        if not self.samples:
            logger.warning("No mobility samples to export")
            return

        with open(output_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["node_id", "x", "y", "time"])
            writer.writerows(self.samples)

        logger.info(f"Exported {len(self.samples)} mobility samples to {output_path}")
