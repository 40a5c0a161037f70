from dataclasses import dataclass
from typing import Iterable, NamedTuple, Tuple


# Indices into the refined (478 point) MediaPipe face mesh.
LANDMARK_INDEX = {
    "left_eye_outer": 33,
    "right_eye_outer": 263,
    "left_iris": 468,
    "right_iris": 473,
}


class Point(NamedTuple):
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class FaceLandmarks:
    """Landmarks of one detected face in normalized image coordinates."""

    points: Tuple[Point, ...]

    @classmethod
    def from_points(cls, points: Iterable) -> "FaceLandmarks":
        return cls(tuple(Point(*p) for p in points))

    @classmethod
    def from_mediapipe(cls, face) -> "FaceLandmarks":
        # face is a NormalizedLandmarkList; each entry carries x, y, z
        return cls(tuple(Point(lm.x, lm.y, lm.z) for lm in face.landmark))

    def __len__(self) -> int:
        return len(self.points)

    def named(self, name: str) -> Point:
        return self.points[LANDMARK_INDEX[name]]

    def left_eye_outer_corner(self) -> Point:
        return self.named("left_eye_outer")

    def right_eye_outer_corner(self) -> Point:
        return self.named("right_eye_outer")

    def left_iris_center(self) -> Point:
        return self.named("left_iris")

    def right_iris_center(self) -> Point:
        return self.named("right_iris")

    def vertical_extent(self) -> float:
        ys = [p.y for p in self.points]
        return max(ys) - min(ys)
