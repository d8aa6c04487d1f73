"""Paired-data (curve table) record container."""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from pydssio.core.exceptions import RecordShapeError
from pydssio.core.pathname import DSSPathname


class PairedDataContainer:
    """
    A DSS paired-data table: one index column and ``cols`` value columns.

    Columns are stored as a ``(cols, rows)`` array so that ``columns[i]``
    is the i-th curve.

    Attributes:
        pathname: Record pathname
        headers: Column labels (one per column) or None
        index_unit: Units of the index (independent variable)
        index_type: Type of the index (e.g. LINEAR)
        column_unit: Units of the columns (dependent variables)
        column_type: Type of the columns
    """

    def __init__(self, rows: int, cols: int) -> None:
        if rows < 0 or cols < 0:
            raise RecordShapeError(f"Invalid paired data shape: ({rows}, {cols})")
        self._index = np.zeros(int(rows), dtype=np.float64)
        self._columns = np.zeros((int(cols), int(rows)), dtype=np.float64)
        self.headers: list[str] | None = None
        self.pathname: DSSPathname | None = None
        self.index_unit = ""
        self.index_type = ""
        self.column_unit = ""
        self.column_type = ""

    @property
    def shape(self) -> tuple[int, int]:
        """Return ``(rows, cols)``."""
        return int(self._index.shape[0]), int(self._columns.shape[0])

    @property
    def rows(self) -> int:
        return self.shape[0]

    @property
    def cols(self) -> int:
        return self.shape[1]

    @property
    def index(self) -> NDArray[np.float64]:
        view = self._index.view()
        view.flags.writeable = False
        return view

    @property
    def columns(self) -> NDArray[np.float64]:
        view = self._columns.view()
        view.flags.writeable = False
        return view

    def column(self, i: int) -> NDArray[np.float64]:
        """Return a copy of column ``i`` (0-based)."""
        return self._columns[i].copy()

    def set_pathname(self, pathname: DSSPathname | str | None) -> None:
        self.pathname = None if pathname is None else DSSPathname.coerce(pathname)

    def set_index(self, index: Sequence[float] | NDArray[np.float64]) -> None:
        """
        Replace the index column.

        Raises:
            RecordShapeError: If the length differs from the row count
        """
        arr = np.asarray(index, dtype=np.float64)
        if arr.ndim != 1 or arr.shape[0] != self.rows:
            raise RecordShapeError(
                f"Index length ({arr.size}) doesn't match row count ({self.rows})",
                expected=self.rows,
                actual=arr.size,
            )
        self._index[:] = arr

    def set_columns(self, values: Sequence[float] | NDArray[np.float64]) -> None:
        """
        Replace all columns from a flat column-major buffer.

        The first ``rows`` entries become column 0, the next ``rows``
        column 1, and so on.

        Raises:
            RecordShapeError: If the buffer length is not ``rows * cols``
        """
        arr = np.asarray(values, dtype=np.float64).ravel()
        rows, cols = self.shape
        if arr.shape[0] != rows * cols:
            raise RecordShapeError(
                f"Column buffer length ({arr.shape[0]}) doesn't match "
                f"rows * cols ({rows} * {cols})",
                expected=rows * cols,
                actual=arr.shape[0],
            )
        self._columns[:, :] = arr.reshape(cols, rows)

    def set_headers(self, headers: Sequence[str] | None) -> None:
        """
        Set column labels; None clears them.

        Raises:
            RecordShapeError: If the label count differs from the column count
        """
        if headers is None:
            self.headers = None
            return
        headers = [str(h) for h in headers]
        if len(headers) != self.cols:
            raise RecordShapeError(
                f"Header count ({len(headers)}) doesn't match column count ({self.cols})",
                expected=self.cols,
                actual=len(headers),
            )
        self.headers = headers

    def set_index_metadata(self, unit: str = "", data_type: str = "") -> None:
        self.index_unit = unit
        self.index_type = data_type

    def set_column_metadata(self, unit: str = "", data_type: str = "") -> None:
        self.column_unit = unit
        self.column_type = data_type

    def to_dataframe(self):
        """
        Convert to a pandas DataFrame.

        Returns:
            DataFrame indexed by the index column, one column per curve
        """
        import pandas as pd

        names = self.headers or [f"column_{i + 1}" for i in range(self.cols)]
        return pd.DataFrame(
            self._columns.T.copy(),
            index=pd.Index(self._index.copy(), name=self.index_unit or "index"),
            columns=names,
        )

    def __repr__(self) -> str:
        return (
            f"PairedDataContainer(pathname={self.pathname}, rows={self.rows}, "
            f"cols={self.cols})"
        )
