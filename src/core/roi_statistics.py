"""
ROI Statistics

Computes intensity statistics for rectangle and ellipse regions from the
displayed slice's pixel array, for surfaces that do not report them.

Inputs:
    - Region kind and handle points
    - Pixel array of the current slice
    - Optional rescale slope/intercept (e.g. HU for CT)

Outputs:
    - Statistics dictionary {mean, stdDev, min, max}

Requirements:
    - numpy for masking and statistics
"""

import math
from typing import Dict, Optional, Sequence

import numpy as np

from core.measurement_geometry import bounding_box
from core.measurement_records import KIND_ELLIPSE, KIND_RECTANGLE


def region_mask(kind: str, handles: Sequence, width: int, height: int) -> np.ndarray:
    """
    Build a boolean mask for a rectangle or ellipse region.

    The region is the bounding box of the handles, clipped to the image.

    Args:
        kind: KIND_RECTANGLE or KIND_ELLIPSE
        handles: Handle points in pixel space
        width: Image width
        height: Image height

    Returns:
        Boolean mask of shape (height, width)
    """
    mask = np.zeros((height, width), dtype=bool)
    left, top, right, bottom = bounding_box(handles)

    left = max(0.0, min(float(width), left))
    right = max(0.0, min(float(width), right))
    top = max(0.0, min(float(height), top))
    bottom = max(0.0, min(float(height), bottom))

    x1 = int(math.floor(left))
    y1 = int(math.floor(top))
    x2 = int(math.ceil(right))
    y2 = int(math.ceil(bottom))
    if x1 >= x2 or y1 >= y2:
        return mask

    if kind == KIND_RECTANGLE:
        mask[y1:y2, x1:x2] = True
    elif kind == KIND_ELLIPSE:
        center_x = (left + right) / 2.0
        center_y = (top + bottom) / 2.0
        radius_x = max(0.5, (right - left) / 2.0)
        radius_y = max(0.5, (bottom - top) / 2.0)
        # Sample pixel centres
        y_indices, x_indices = np.ogrid[:height, :width]
        inside = (((x_indices + 0.5 - center_x) / radius_x) ** 2
                  + ((y_indices + 0.5 - center_y) / radius_y) ** 2) <= 1
        in_box = (x_indices >= x1) & (x_indices < x2) & (y_indices >= y1) & (y_indices < y2)
        mask = inside & in_box
    else:
        raise ValueError(f"No region mask for kind: {kind}")
    return mask


def compute_region_statistics(kind: str, handles: Sequence, pixel_array: np.ndarray,
                              rescale_slope: Optional[float] = None,
                              rescale_intercept: Optional[float] = None) -> Optional[Dict[str, float]]:
    """
    Calculate mean, standard deviation, min and max inside a region.

    Args:
        kind: KIND_RECTANGLE or KIND_ELLIPSE
        handles: Handle points in pixel space
        pixel_array: 2D image array (RGB or RGBA channels are averaged)
        rescale_slope: Optional rescale slope applied to pixel values
        rescale_intercept: Optional rescale intercept applied to pixel values

    Returns:
        Dictionary with mean, stdDev, min, max; None if the region covers no finite pixels
    """
    array = np.asarray(pixel_array)
    if array.ndim == 3:
        # RGB/RGBA only; a frame stack is not a single slice
        if array.shape[2] not in (3, 4):
            raise ValueError(f"Expected RGB or RGBA channels, got shape {array.shape}")
        array = array.mean(axis=2)
    if array.ndim != 2:
        raise ValueError(f"Expected a 2D pixel array, got shape {array.shape}")

    height, width = array.shape
    mask = region_mask(kind, handles, width, height)
    values = array[mask].astype(np.float64)

    if rescale_slope is not None and rescale_intercept is not None:
        values = values * float(rescale_slope) + float(rescale_intercept)

    # NaN/inf samples (e.g. padding in float images) are excluded
    values = values[np.isfinite(values)]
    if values.size == 0:
        return None

    return {
        "mean": float(np.mean(values)),
        "stdDev": float(np.std(values)),
        "min": float(np.min(values)),
        "max": float(np.max(values)),
    }
