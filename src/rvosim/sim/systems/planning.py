from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

from pygame.math import Vector2

from ..core.config import PlannerMethod, SimulationConfig
from ..core.store import AgentStore
from ..utils.math2d import _clamp_value, _det, _dot, _rotate_xy, _safe_normalize_xy

# Finite stand-in for "no collision along this ray"; keeps safety / time_cost comparable.
NO_COLLISION_TIME = 100000.0
_REL_SPEED_SQ_EPSILON = 1e-12
_TIME_COST_EPSILON = 1e-6
_SPEED_EPSILON = 1e-6

# (pb_x, pb_y, vb_x, vb_y, combined_radius, leg1_x, leg1_y, leg2_x, leg2_y)
_NeighborTerms = Tuple[float, float, float, float, float, float, float, float, float]


@dataclass(slots=True)
class PenaltyTerms:
    penalty: float
    time_cost: float
    distance_cost: float
    inertia_cost: float


def time_to_collision(pa: Vector2, rel: Vector2, pb: Vector2, combined_radius: float, colliding: bool) -> float:
    """
    Time until the disk of `combined_radius` around `pb` is reached along `rel` from `pa`.

    For an agent that already overlaps (`colliding`) this is the exit time
    instead. Rays that never hit, or only hit in the past, return
    `NO_COLLISION_TIME` (negated when colliding).
    """

    return _time_to_collision_xy(pa.x, pa.y, rel.x, rel.y, pb.x, pb.y, combined_radius, colliding)


def _time_to_collision_xy(
    pa_x: float,
    pa_y: float,
    rel_x: float,
    rel_y: float,
    pb_x: float,
    pb_y: float,
    combined_radius: float,
    colliding: bool,
) -> float:
    sentinel = -NO_COLLISION_TIME if colliding else NO_COLLISION_TIME
    rel_sq = rel_x * rel_x + rel_y * rel_y
    if rel_sq < _REL_SPEED_SQ_EPSILON:
        return sentinel
    ba_x = pb_x - pa_x
    ba_y = pb_y - pa_y
    cross = _det(rel_x, rel_y, ba_x, ba_y)
    discr = combined_radius * combined_radius * rel_sq - cross * cross
    if discr <= 0.0:
        return sentinel
    along = _dot(rel_x, rel_y, ba_x, ba_y)
    if colliding:
        time = (along + math.sqrt(discr)) / rel_sq
    else:
        time = (along - math.sqrt(discr)) / rel_sq
    if time < 0.0:
        return sentinel
    return time


def preferred_velocity(store: AgentStore, index: int) -> Vector2:
    position = store.positions[index]
    destination = store.destinations[index]
    direction = _safe_normalize_xy(destination.x - position.x, destination.y - position.y)
    return direction * store.max_speeds[index]


def candidate_speeds(max_speed: float, step: float) -> List[float]:
    """Speeds from `max_speed` down toward zero in `step` decrements, zero excluded."""
    speeds: List[float] = []
    if step <= 0.0:
        return speeds
    k = 0
    while True:
        speed = max_speed - k * step
        if speed <= _SPEED_EPSILON:
            break
        speeds.append(speed)
        k += 1
    return speeds


def candidate_directions(count: int) -> List[Tuple[float, float]]:
    angle_step = 2.0 * math.pi / count
    return [(math.sin(k * angle_step), math.cos(k * angle_step)) for k in range(count)]


class VelocityPlanner:
    """
    Discretized penalty minimization over candidate velocities.

    Subclasses only decide how the velocity relative to a neighbor is formed
    for a candidate; sampling, costs and the argmin are shared.
    """

    method: PlannerMethod

    def __init__(self, store: AgentStore, num_candidate_directions: int, speed_step: float = 0.1) -> None:
        self._store = store
        self._directions = candidate_directions(num_candidate_directions)
        self._speed_step = speed_step

    @property
    def num_candidate_directions(self) -> int:
        return len(self._directions)

    def plan(self, index: int, delta_time: float) -> Vector2:
        store = self._store
        if not store.active[index] or store.reached_destination[index]:
            return Vector2()
        preferred = preferred_velocity(store, index)
        if not store.neighbor_indices[index]:
            return preferred

        neighbors = self._neighbor_terms(index)
        pref_x = preferred.x
        pref_y = preferred.y
        best_x = pref_x
        best_y = pref_y
        best_penalty = self._terms_xy(index, neighbors, pref_x, pref_y, pref_x, pref_y, delta_time)[0]

        speeds = candidate_speeds(store.max_speeds[index], self._speed_step)
        for sin_theta, cos_theta in self._directions:
            for speed in speeds:
                cand_x = speed * sin_theta
                cand_y = speed * cos_theta
                penalty = self._terms_xy(index, neighbors, cand_x, cand_y, pref_x, pref_y, delta_time)[0]
                if penalty < best_penalty:
                    best_penalty = penalty
                    best_x = cand_x
                    best_y = cand_y
        return Vector2(best_x, best_y)

    def penalty(self, index: int, candidate: Vector2, preferred: Vector2, delta_time: float) -> PenaltyTerms:
        neighbors = self._neighbor_terms(index)
        penalty, time_cost, distance_cost, inertia_cost = self._terms_xy(
            index, neighbors, candidate.x, candidate.y, preferred.x, preferred.y, delta_time
        )
        return PenaltyTerms(penalty=penalty, time_cost=time_cost, distance_cost=distance_cost, inertia_cost=inertia_cost)

    def _neighbor_terms(self, index: int) -> List[_NeighborTerms]:
        store = self._store
        radius_self = store.radii[index]
        terms: List[_NeighborTerms] = []
        for neighbor in store.neighbor_indices[index]:
            pb = store.positions[neighbor]
            vb = store.velocities[neighbor]
            terms.append((pb.x, pb.y, vb.x, vb.y, radius_self + store.radii[neighbor], 0.0, 0.0, 0.0, 0.0))
        return terms

    def _relative_velocity(
        self,
        index: int,
        neighbor: _NeighborTerms,
        cand_x: float,
        cand_y: float,
    ) -> tuple[float, float]:
        # Reciprocal share: this agent takes 1/responsibility of the change away from its current velocity.
        store = self._store
        inv_responsibility = 1.0 / store.responsibility_factors[index]
        va = store.velocities[index]
        keep = 1.0 - inv_responsibility
        rel_x = inv_responsibility * cand_x + keep * va.x - neighbor[2]
        rel_y = inv_responsibility * cand_y + keep * va.y - neighbor[3]
        return rel_x, rel_y

    def _terms_xy(
        self,
        index: int,
        neighbors: List[_NeighborTerms],
        cand_x: float,
        cand_y: float,
        pref_x: float,
        pref_y: float,
        delta_time: float,
    ) -> tuple[float, float, float, float]:
        store = self._store
        pa = store.positions[index]
        va = store.velocities[index]
        colliding = store.colliding[index]
        max_speed = store.max_speeds[index]
        max_speed_sq = max_speed * max_speed

        distance_cost = math.hypot(cand_x - pref_x, cand_y - pref_y)
        inertia_cost = store.inertia_factors[index] * math.hypot(cand_x - va.x, cand_y - va.y)
        time_cost = NO_COLLISION_TIME
        for neighbor in neighbors:
            rel_x, rel_y = self._relative_velocity(index, neighbor, cand_x, cand_y)
            time = _time_to_collision_xy(pa.x, pa.y, rel_x, rel_y, neighbor[0], neighbor[1], neighbor[4], colliding)
            if colliding:
                speed_term = (cand_x * cand_x + cand_y * cand_y) / max_speed_sq if max_speed_sq > 0.0 else 0.0
                time = -(time / delta_time) - speed_term
            if time < time_cost:
                time_cost = time

        if abs(time_cost) < _TIME_COST_EPSILON:
            time_cost = _TIME_COST_EPSILON if time_cost >= 0.0 else -_TIME_COST_EPSILON
        penalty = store.safety_factors[index] / time_cost + distance_cost + inertia_cost
        return penalty, time_cost, distance_cost, inertia_cost


class RVOPlanner(VelocityPlanner):
    method = PlannerMethod.RVO


class HRVOPlanner(VelocityPlanner):
    """
    Hybrid RVO: the obstacle apex is moved half way toward the nearer cone leg.

    The cone legs only depend on the two positions, so they are computed once
    per neighbor per plan rather than per candidate.
    """

    method = PlannerMethod.HRVO

    def _neighbor_terms(self, index: int) -> List[_NeighborTerms]:
        pa = self._store.positions[index]
        terms: List[_NeighborTerms] = []
        for pb_x, pb_y, vb_x, vb_y, combined_radius, _, _, _, _ in super()._neighbor_terms(index):
            legs = cone_legs(pb_x - pa.x, pb_y - pa.y, combined_radius)
            if legs is None:
                terms.append((pb_x, pb_y, vb_x, vb_y, combined_radius, 0.0, 0.0, 0.0, 0.0))
            else:
                (leg1_x, leg1_y), (leg2_x, leg2_y) = legs
                terms.append((pb_x, pb_y, vb_x, vb_y, combined_radius, leg1_x, leg1_y, leg2_x, leg2_y))
        return terms

    def _relative_velocity(
        self,
        index: int,
        neighbor: _NeighborTerms,
        cand_x: float,
        cand_y: float,
    ) -> tuple[float, float]:
        rel_x, rel_y = super()._relative_velocity(index, neighbor, cand_x, cand_y)
        leg1_x, leg1_y, leg2_x, leg2_y = neighbor[5], neighbor[6], neighbor[7], neighbor[8]
        if leg1_x == 0.0 and leg1_y == 0.0 and leg2_x == 0.0 and leg2_y == 0.0:
            u_x = 0.0
            u_y = 0.0
        else:
            if _dot(rel_x, rel_y, leg1_x, leg1_y) < _dot(rel_x, rel_y, leg2_x, leg2_y):
                leg_x, leg_y = leg1_x, leg1_y
            else:
                leg_x, leg_y = leg2_x, leg2_y
            along = _dot(rel_x, rel_y, leg_x, leg_y)
            u_x = along * leg_x - rel_x
            u_y = along * leg_y - rel_y
        apex_x = neighbor[2] + 0.5 * u_x
        apex_y = neighbor[3] + 0.5 * u_y
        return cand_x - apex_x, cand_y - apex_y


def cone_legs(
    ba_x: float, ba_y: float, combined_radius: float
) -> tuple[tuple[float, float], tuple[float, float]] | None:
    """
    Unit directions of the two tangent legs of the velocity obstacle toward offset `ba`.

    Overlapping disks clamp the half-angle to 90 degrees; coincident centres
    have no defined cone and return None.
    """

    dist = math.hypot(ba_x, ba_y)
    if dist < 1e-9:
        return None
    dir_x = ba_x / dist
    dir_y = ba_y / dist
    angle = math.asin(_clamp_value(combined_radius / dist, -1.0, 1.0))
    return _rotate_xy(dir_x, dir_y, angle), _rotate_xy(dir_x, dir_y, -angle)


def make_planner(method: PlannerMethod | str, store: AgentStore, config: SimulationConfig) -> VelocityPlanner:
    method = PlannerMethod(str(method.value if isinstance(method, PlannerMethod) else method).upper())
    planner_cls = HRVOPlanner if method is PlannerMethod.HRVO else RVOPlanner
    return planner_cls(store, config.num_candidate_directions, config.speed_step)
