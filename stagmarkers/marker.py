"""Decoded markers: quads that carry an identifier."""

from __future__ import annotations

from typing import Sequence

import numpy

from stagmarkers.quad import Quad


class Marker(Quad):
    """A quad whose code was read as ``id``.

    ``conic`` holds the 3x3 conic matrix of the marker's circular border once
    pose refinement has fitted one, and is ``None`` before that.
    """

    def __init__(self, corners: Sequence[Sequence[float]], marker_id: int) -> None:
        super().__init__(corners)
        self.id = marker_id
        self.conic: numpy.ndarray | None = None

    @classmethod
    def from_quad(cls, quad: Quad, marker_id: int) -> "Marker":
        """Create a marker carrying a copy of ``quad``'s geometry."""
        marker = cls(quad.corners, marker_id)
        marker.line_inf = quad.line_inf
        marker.projective_distortion = quad.projective_distortion
        marker.homography = None if quad.homography is None else quad.homography.copy()
        marker.center = quad.center
        return marker

    def shift_corners(self, shift: int) -> None:
        """Rotate the corner order by ``shift`` places (1 to 3) and re-estimate.

        After the shift the corner that was at index ``shift`` comes first.
        Any other value leaves the marker unchanged.
        """
        if shift not in (1, 2, 3):
            return
        self.corners = self.corners[shift:] + self.corners[:shift]
        self.estimate_homography()