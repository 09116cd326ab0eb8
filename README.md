# stagmarkers

Building blocks for reading STag fiducial markers in grayscale images and
refining their pose. Images are NumPy arrays of 8-bit intensities, indexed
`image[row, column]`; points are `(x, y)` pairs with `x` the column.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install .[test]
pytest
```

## What is inside

- `stagmarkers.geometry`: pixel reads with boundary handling
  (`read_pixel_unsafe`, `read_pixel_safe`, `read_pixel_safe_bilinear`; points
  outside the image read as 128) and the 2-D helpers `cross_product` and
  `squared_distance`.
- `stagmarkers.gradient`: `prewitt_gradient` returns the Prewitt gradient
  magnitude of an image and the tail probabilities of its values; `nfa`
  computes the number of false alarms of a run of pixels.
- `stagmarkers.edges`: `EdgeSegment` (a chain of `(row, column)` pixels) and
  `EdgeMap`. `validate_edge_segments` keeps only the pieces of each segment
  that pass the Helmholtz test, splitting chains at their weakest gradient;
  `extract_new_segments` rebuilds the segment list from the marked pixels.
- `stagmarkers.linalg`: `jacobi` eigen-decomposition of symmetric matrices,
  `cholesky`, and Gauss-Jordan `inverse` (raising `SingularMatrixError`).
- `stagmarkers.quad`: `Quad` computes the line at infinity and projective
  distortion of four corners; `estimate_homography` stores the homography
  from the unit square onto the corners and the projected centre.
- `stagmarkers.marker`: `Marker` is a `Quad` with an `id`.
  `Marker.from_quad` copies a quad's geometry and `shift_corners` rotates the
  corner order by 1 to 3 places and re-estimates the homography.
- `stagmarkers.fastmath`: `fast_sin`, `fast_cos` and `fit_circle`, which
  returns `(cx, cy, r)` or `None` when the points are not close to a circle.
- `stagmarkers.ellipse`: `Ellipse` built from conic coefficients
  (`from_coefficients`) or fitted to points (`from_points`, `from_pixels`),
  with `perimeter`, `draw`, `distance`, `squared_distance`,
  `average_fitting_error`, `rms_fitting_error`, `closest_points`,
  `closest_point_and_distance` and `samples`.
- `stagmarkers.pose`: `project_point`, `point_in_quad`, and
  `refine_marker_pose`, which looks in an `EdgeMap` for a loop matching the
  marker's circular border, fits an ellipse to it and adjusts the homography
  (Nelder-Mead) so that the ellipse maps back onto the circle of radius 0.4
  about the marker's centre. It returns `False` when no loop fits.
- `stagmarkers.stag`: the sampling layout of a marker (`polar_point`,
  `code_locations`, `black_locations`, `white_locations`), `otsu_threshold`,
  `read_code`, which reads the 48 code bits of a quad (dark samples read as
  1), and `MarkerList`, which keeps the least-distorted marker for each id.

## Example

```python
from stagmarkers.quad import Quad
from stagmarkers.marker import Marker
from stagmarkers.pose import project_point

quad = Quad([(10.0, 10.0), (110.0, 12.0), (108.0, 112.0), (8.0, 108.0)])
quad.estimate_homography()
marker = Marker.from_quad(quad, 7)
print(marker.center, project_point((1.0, 0.0), marker.homography))
```

## What this package does not do

- It does not find edge segments or line segments in an image: an `EdgeMap`
  must be filled with segments by the caller before validation or pose
  refinement.
- It does not search an image for quadrilateral candidates; `Quad` objects
  are built from corners the caller supplies.
- `read_code` returns the raw 48 bits; there is no codebook to turn them into
  a marker id and corner rotation.
- There is no command-line tool, no drawing of results and no camera pose
  estimation.