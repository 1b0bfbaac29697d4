"""
DICOM Calibration Utilities

This module resolves the physical calibration of the currently displayed image:
- Pixel spacing (row and column spacing in mm)
- Slice thickness (mm)
- Rescale slope/intercept for region statistics

Inputs:
    - pydicom.Dataset objects

Outputs:
    - Calibration objects with documented defaults for missing metadata
    - Rescale parameters

Requirements:
    - pydicom library
"""

from typing import Optional, Tuple
from pydicom.dataset import Dataset


DEFAULT_PIXEL_SPACING: Tuple[float, float] = (1.0, 1.0)
DEFAULT_SLICE_THICKNESS: float = 1.0


def _read_spacing_pair(dataset: Dataset, keyword: str) -> Optional[Tuple[float, float]]:
    """Read a two-valued positive spacing attribute such as PixelSpacing."""
    try:
        value = getattr(dataset, keyword, None)
        if value is not None and len(value) >= 2:
            row_spacing = float(value[0])
            col_spacing = float(value[1])
            if row_spacing > 0 and col_spacing > 0:
                return (row_spacing, col_spacing)
    except (TypeError, ValueError):
        pass
    return None


def _read_positive_float(dataset: Dataset, keyword: str) -> Optional[float]:
    try:
        value = getattr(dataset, keyword, None)
        if value is None or value == "":
            return None
        number = float(value)
        if number > 0:
            return number
    except (TypeError, ValueError):
        pass
    return None


def calculate_pixel_spacing_from_fov(dataset: Dataset) -> Optional[Tuple[float, float]]:
    """
    Derive pixel spacing from field of view and matrix size.

    MR images use Reconstruction Diameter together with Percent Phase Field of View
    and the phase encoding direction; other modalities divide Field of View (or
    Reconstruction Diameter) by the matrix size.

    Args:
        dataset: pydicom Dataset

    Returns:
        Tuple of (row_spacing, column_spacing) in mm, or None if not derivable
    """
    try:
        rows = int(getattr(dataset, 'Rows', 0) or 0)
        columns = int(getattr(dataset, 'Columns', 0) or 0)
    except (TypeError, ValueError):
        return None
    if rows <= 0 or columns <= 0:
        return None

    modality = str(getattr(dataset, 'Modality', '')).upper()
    recon_diameter = _read_positive_float(dataset, 'ReconstructionDiameter')

    if modality == 'MR':
        if recon_diameter is None:
            return None
        percent_phase_fov = _read_positive_float(dataset, 'PercentPhaseFieldOfView')
        direction = str(getattr(dataset, 'InPlanePhaseEncodingDirection', '')).upper()
        row_fov = col_fov = recon_diameter
        if percent_phase_fov is not None:
            phase_fov = recon_diameter * (percent_phase_fov / 100.0)
            if direction == 'ROW':
                row_fov = phase_fov
            elif direction == 'COL':
                col_fov = phase_fov
        return (row_fov / rows, col_fov / columns)

    fov = _read_positive_float(dataset, 'FieldOfView')
    if fov is None:
        fov = recon_diameter
    if fov is None:
        return None
    return (fov / rows, fov / columns)


def get_pixel_spacing(dataset: Optional[Dataset]) -> Optional[Tuple[float, float]]:
    """
    Get pixel spacing from DICOM dataset.
    Checks multiple sources in priority order:
    1. Pixel Spacing (0028,0030)
    2. Imager Pixel Spacing (0018,1164)
    3. Field of View + Matrix Size

    Args:
        dataset: pydicom Dataset (None allowed)

    Returns:
        Tuple of (row_spacing, column_spacing) in mm, or None if not available
    """
    if dataset is None:
        return None
    for keyword in ('PixelSpacing', 'ImagerPixelSpacing'):
        spacing = _read_spacing_pair(dataset, keyword)
        if spacing is not None:
            return spacing
    return calculate_pixel_spacing_from_fov(dataset)


def get_slice_thickness(dataset: Optional[Dataset]) -> Optional[float]:
    """
    Get slice thickness from DICOM dataset.

    Falls back to Spacing Between Slices (0018,0088) when Slice Thickness
    (0018,0050) is absent or not positive.

    Args:
        dataset: pydicom Dataset (None allowed)

    Returns:
        Slice thickness in mm, or None if not available
    """
    if dataset is None:
        return None
    thickness = _read_positive_float(dataset, 'SliceThickness')
    if thickness is None:
        thickness = _read_positive_float(dataset, 'SpacingBetweenSlices')
    return thickness


def get_rescale_parameters(dataset: Optional[Dataset]) -> Tuple[Optional[float], Optional[float]]:
    """
    Extract rescale slope and intercept from DICOM dataset.

    Returns:
        Tuple of (rescale_slope, rescale_intercept); either may be None
    """
    if dataset is None:
        return None, None

    def _first_float(keyword: str) -> Optional[float]:
        value = getattr(dataset, keyword, None)
        if value is None or value == "":
            return None
        if isinstance(value, (list, tuple)):
            value = value[0]
        try:
            return float(value)
        except (TypeError, ValueError):
            print(f"Error extracting {keyword}: {value!r}")
            return None

    return _first_float('RescaleSlope'), _first_float('RescaleIntercept')


class Calibration:
    """
    Physical calibration of one displayed image.

    pixel_spacing follows DICOM order (row_spacing, column_spacing): the first
    value is the vertical distance between rows, the second the horizontal
    distance between columns. Either field may be None when the metadata is
    unavailable; the resolved_* accessors substitute documented defaults.
    """

    def __init__(self, pixel_spacing: Optional[Tuple[float, float]] = None,
                 slice_thickness: Optional[float] = None):
        self.pixel_spacing = tuple(float(v) for v in pixel_spacing) if pixel_spacing else None
        self.slice_thickness = float(slice_thickness) if slice_thickness else None

    @property
    def has_pixel_spacing(self) -> bool:
        return self.pixel_spacing is not None and len(self.pixel_spacing) >= 2

    @property
    def has_slice_thickness(self) -> bool:
        return self.slice_thickness is not None and self.slice_thickness > 0

    def resolved_pixel_spacing(self) -> Tuple[float, float]:
        if not self.has_pixel_spacing:
            return DEFAULT_PIXEL_SPACING
        return (self.pixel_spacing[0], self.pixel_spacing[1])

    def resolved_slice_thickness(self) -> float:
        if not self.has_slice_thickness:
            return DEFAULT_SLICE_THICKNESS
        return self.slice_thickness

    def axis_spacing(self) -> Tuple[float, float]:
        """
        Spacing in handle-coordinate order (x_spacing, y_spacing).

        Handle x runs along a row (column spacing), handle y runs down the
        columns (row spacing).
        """
        row_spacing, col_spacing = self.resolved_pixel_spacing()
        return (col_spacing, row_spacing)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Calibration):
            return NotImplemented
        return (self.pixel_spacing == other.pixel_spacing
                and self.slice_thickness == other.slice_thickness)

    def __repr__(self) -> str:
        return f"Calibration(pixel_spacing={self.pixel_spacing}, slice_thickness={self.slice_thickness})"


def calibration_from_dataset(dataset: Optional[Dataset]) -> Optional[Calibration]:
    """
    Build a Calibration from a pydicom Dataset.

    Returns:
        Calibration (fields None where metadata is missing), or None without a dataset
    """
    if dataset is None:
        return None
    return Calibration(get_pixel_spacing(dataset), get_slice_thickness(dataset))
