"""Edge segments and their validation by the Helmholtz principle.

An edge segment is a chain of connected pixels. Validation keeps the pieces
of each chain whose weakest gradient is unlikely to appear by chance, and
splits chains at their weakest points until every surviving piece passes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy

from stagmarkers.gradient import EPSILON, nfa, prewitt_gradient

MIN_PATH_LENGTH = 10
"""Pieces shorter than this are neither tested nor kept."""

EDGE_VALUE = 255
"""Value written into the edge image for validated pixels."""

Pixel = tuple[int, int]


@dataclass
class EdgeSegment:
    """A chain of edge pixels, each given as ``(row, column)``."""

    pixels: list[Pixel] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pixels)

    def __iter__(self):
        return iter(self.pixels)


@dataclass
class EdgeMap:
    """Edge segments found in an image, with a per-pixel edge marker image."""

    width: int
    height: int
    segments: list[EdgeSegment] = field(default_factory=list)
    edge_image: numpy.ndarray | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("edge map dimensions must be positive")
        if self.edge_image is None:
            self.edge_image = numpy.zeros((self.height, self.width), dtype=numpy.uint8)
        elif self.edge_image.shape != (self.height, self.width):
            raise ValueError("edge image shape does not match the map dimensions")


def _test_segment(
    edge_image: numpy.ndarray,
    gradient: numpy.ndarray,
    pixels: list[Pixel],
    first: int,
    last: int,
    np: int,
    tail: numpy.ndarray,
    div: float,
) -> None:
    """Mark the meaningful pieces of ``pixels[first:last + 1]`` in the edge image."""
    pending = [(first, last)]
    while pending:
        index1, index2 = pending.pop()
        chain_length = index2 - index1 + 1
        if chain_length < MIN_PATH_LENGTH:
            continue

        grads = [int(gradient[r, c]) for r, c in pixels[index1 : index2 + 1]]
        min_grad = min(grads)
        min_index = index1 + grads.index(min_grad)

        if nfa(np, float(tail[min_grad]), int(chain_length / div)) <= EPSILON:
            for r, c in pixels[index1 : index2 + 1]:
                edge_image[r, c] = EDGE_VALUE
            continue

        # Split at the weakest point, skipping any equally weak neighbours.
        end = min_index - 1
        while end > index1 and grads[end - index1] <= min_grad:
            end -= 1
        start = min_index + 1
        while start < index2 and grads[start - index1] <= min_grad:
            start += 1

        # Right half is pushed first so the left half is handled first.
        pending.append((start, index2))
        pending.append((index1, end))


def extract_new_segments(edge_map: EdgeMap) -> None:
    """Replace the map's segments with their runs of marked edge pixels.

    Only runs of at least ten consecutive marked pixels are kept.
    """
    edge_image = edge_map.edge_image
    new_segments: list[EdgeSegment] = []

    for segment in edge_map.segments:
        pixels = segment.pixels
        count = len(pixels)
        start = 0
        while start < count:
            while start < count and not edge_image[pixels[start]]:
                start += 1
            end = start + 1
            while end < count and edge_image[pixels[end]]:
                end += 1
            if end - start >= MIN_PATH_LENGTH:
                new_segments.append(EdgeSegment(list(pixels[start:end])))
            start = end + 1

    edge_map.segments = new_segments


def validate_edge_segments(edge_map: EdgeMap, image: numpy.ndarray, div: float) -> None:
    """Keep only the statistically meaningful parts of the map's segments.

    ``image`` is the grey-level image the segments were found in and ``div``
    scales down the number of independent pixels counted along a piece.
    The map's edge image and segments are updated in place.
    """
    img = numpy.asarray(image)
    if img.shape[:2] != (edge_map.height, edge_map.width):
        raise ValueError("image shape does not match the edge map dimensions")

    edge_map.edge_image[:, :] = 0
    gradient, tail = prewitt_gradient(img)

    np = sum(len(s) * (len(s) - 1) // 2 for s in edge_map.segments)

    for segment in edge_map.segments:
        _test_segment(
            edge_map.edge_image, gradient, segment.pixels, 0, len(segment) - 1, np, tail, div
        )

    extract_new_segments(edge_map)