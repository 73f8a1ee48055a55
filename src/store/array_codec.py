"""Header-tagged dense array files.

This module reads and writes the ``*.data.hdr`` vector and matrix files
a decomposition run leaves behind. A text header names the shape, the
element size, and a raw little-endian data file stored beside it.
Matrices are stored column-major.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal

import numpy as np

from core.constants import DATA_SUFFIX
from core.errors import HDVizCodecError

ArrayKind = Literal["DenseVector", "DenseMatrix"]
STRING_ELEMENT_SIZE = "string"


@dataclass(frozen=True)
class ArrayHeader:
    """Parsed array header.

    Attributes:
        kind: ``DenseVector`` or ``DenseMatrix``.
        shape: One entry for vectors, rows then columns for matrices.
        element_size: Bytes per element, or ``"string"`` for text vectors.
        row_major: Whether matrix data is stored row by row.
        data_file: Data file path resolved against the header directory.
    """

    kind: ArrayKind
    shape: tuple[int, ...]
    element_size: int | str
    row_major: bool
    data_file: Path


def read_vector(path: str | Path, dtype: np.dtype | type = np.float64) -> np.ndarray:
    """Read a numeric vector file.

    Args:
        path: Header file path.
        dtype: Element type the file was written with.

    Returns:
        One-dimensional array.

    Raises:
        HDVizCodecError: If the file is missing, malformed, or truncated.
    """
    header = read_header(path)
    _expect_kind(header, "DenseVector", path)
    return _read_payload(header, np.dtype(dtype), path)


def read_matrix(path: str | Path, dtype: np.dtype | type = np.float64) -> np.ndarray:
    """Read a numeric matrix file.

    Args:
        path: Header file path.
        dtype: Element type the file was written with.

    Returns:
        Two-dimensional array shaped rows by columns.

    Raises:
        HDVizCodecError: If the file is missing, malformed, or truncated.
    """
    header = read_header(path)
    _expect_kind(header, "DenseMatrix", path)
    return _read_payload(header, np.dtype(dtype), path)


def read_string_vector(path: str | Path) -> tuple[str, ...]:
    """Read a string vector file.

    Args:
        path: Header file path.

    Returns:
        Tuple of strings in stored order.

    Raises:
        HDVizCodecError: If the file is missing, malformed, or truncated.
    """
    header = read_header(path)
    _expect_kind(header, "DenseVector", path)
    if header.element_size != STRING_ELEMENT_SIZE:
        raise HDVizCodecError(f"Array file {path} does not hold strings.", path=path)
    try:
        lines = _read_data_bytes(header, path).decode("utf-8").split("\n")
    except UnicodeDecodeError as error:
        raise HDVizCodecError(
            f"String data in {header.data_file} is not valid UTF-8: {error}.",
            path=path,
        ) from error
    count = header.shape[0]
    if len(lines) < count:
        raise HDVizCodecError(
            f"Short read in {header.data_file}: expected {count} strings, found {len(lines)}.",
            path=path,
        )
    return tuple(lines[:count])


def write_vector(path: str | Path, values: Iterable[float] | np.ndarray) -> None:
    """Write a numeric vector file and its data file.

    Args:
        path: Header file path.
        values: One-dimensional numeric values.
    """
    array = np.asarray(values)
    if array.ndim != 1:
        raise HDVizCodecError(
            f"Cannot write {array.ndim}-d array as a vector to {path}.",
            path=path,
        )
    _write_payload(Path(path), "DenseVector", array)


def write_matrix(path: str | Path, values: np.ndarray) -> None:
    """Write a numeric matrix file and its data file.

    Args:
        path: Header file path.
        values: Two-dimensional numeric values, rows by columns.
    """
    array = np.asarray(values)
    if array.ndim != 2:
        raise HDVizCodecError(
            f"Cannot write {array.ndim}-d array as a matrix to {path}.",
            path=path,
        )
    _write_payload(Path(path), "DenseMatrix", array)


def write_string_vector(path: str | Path, values: Iterable[str]) -> None:
    """Write a string vector file and its newline-delimited data file.

    Args:
        path: Header file path.
        values: Strings without embedded newlines.
    """
    header_path = Path(path)
    strings = [str(value) for value in values]
    if any("\n" in value for value in strings):
        raise HDVizCodecError(
            f"String values written to {path} must not contain newlines.",
            path=path,
        )
    data_path = _data_path_for(header_path)
    data_path.write_text("\n".join(strings), encoding="utf-8")
    _write_header(header_path, "DenseVector", (len(strings),), STRING_ELEMENT_SIZE, data_path)


def read_header(path: str | Path) -> ArrayHeader:
    """Parse an array header file.

    Args:
        path: Header file path.

    Returns:
        Parsed header with the data file resolved.

    Raises:
        HDVizCodecError: If the header is missing or malformed.
    """
    header_path = Path(path)
    try:
        lines = header_path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError as error:
        raise HDVizCodecError(f"Array file not found: {header_path}.", path=header_path) from error
    except (OSError, UnicodeDecodeError) as error:
        raise HDVizCodecError(
            f"Failed to read array header {header_path}: {error}.",
            path=header_path,
        ) from error
    lines = [line.strip() for line in lines if line.strip()]
    if not lines or lines[0] not in ("DenseVector", "DenseMatrix"):
        raise HDVizCodecError(
            f"Malformed array header {header_path}: expected DenseVector or DenseMatrix tag.",
            path=header_path,
        )
    kind: ArrayKind = "DenseVector" if lines[0] == "DenseVector" else "DenseMatrix"
    fields = _parse_fields(lines[1:], header_path)
    return ArrayHeader(
        kind=kind,
        shape=_parse_shape(kind, fields.get("Size"), header_path),
        element_size=_parse_element_size(fields.get("ElementSize"), header_path),
        row_major=fields.get("RowMajor", "false").lower() == "true",
        data_file=header_path.parent / _required_field(fields, "DataFile", header_path),
    )


def _parse_fields(lines: list[str], header_path: Path) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in lines:
        key, separator, value = line.partition(":")
        if not separator:
            raise HDVizCodecError(
                f"Malformed array header {header_path}: bad line '{line}'.",
                path=header_path,
            )
        fields[key.strip()] = value.strip()
    return fields


def _required_field(fields: dict[str, str], key: str, header_path: Path) -> str:
    value = fields.get(key)
    if not value:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: missing {key}.",
            path=header_path,
        )
    return value


def _parse_shape(kind: ArrayKind, raw_value: str | None, header_path: Path) -> tuple[int, ...]:
    if not raw_value:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: missing Size.",
            path=header_path,
        )
    parts = [part.strip() for part in raw_value.lower().split("x")]
    expected_parts = 1 if kind == "DenseVector" else 2
    try:
        shape = tuple(int(part) for part in parts)
    except ValueError as error:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: unparsable Size '{raw_value}'.",
            path=header_path,
        ) from error
    if len(shape) != expected_parts or any(extent < 0 for extent in shape):
        raise HDVizCodecError(
            f"Malformed array header {header_path}: Size '{raw_value}' does not fit {kind}.",
            path=header_path,
        )
    return shape


def _parse_element_size(raw_value: str | None, header_path: Path) -> int | str:
    if not raw_value:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: missing ElementSize.",
            path=header_path,
        )
    if raw_value == STRING_ELEMENT_SIZE:
        return STRING_ELEMENT_SIZE
    try:
        element_size = int(raw_value)
    except ValueError as error:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: unparsable ElementSize '{raw_value}'.",
            path=header_path,
        ) from error
    if element_size <= 0:
        raise HDVizCodecError(
            f"Malformed array header {header_path}: ElementSize must be positive.",
            path=header_path,
        )
    return element_size


def _expect_kind(header: ArrayHeader, kind: ArrayKind, path: str | Path) -> None:
    if header.kind != kind:
        raise HDVizCodecError(
            f"Array file {path} holds a {header.kind}, expected {kind}.",
            path=path,
        )


def _read_payload(header: ArrayHeader, dtype: np.dtype, path: str | Path) -> np.ndarray:
    if header.element_size != dtype.itemsize:
        raise HDVizCodecError(
            f"Array file {path} stores {header.element_size}-byte elements, "
            f"cannot read them as {dtype.name}.",
            path=path,
        )
    raw = _read_data_bytes(header, path)
    count = int(np.prod(header.shape, dtype=np.int64))
    expected_bytes = count * dtype.itemsize
    if len(raw) < expected_bytes:
        raise HDVizCodecError(
            f"Short read in {header.data_file}: expected {expected_bytes} bytes, got {len(raw)}.",
            path=path,
        )
    if len(raw) > expected_bytes:
        raise HDVizCodecError(
            f"Data file {header.data_file} holds {len(raw)} bytes, "
            f"header declares {expected_bytes}.",
            path=path,
        )
    if count == 0:
        flat = np.zeros(0, dtype=dtype)
    else:
        flat = np.frombuffer(raw, dtype=dtype.newbyteorder("<"), count=count).astype(dtype)
    if header.kind == "DenseVector":
        return flat
    order = "C" if header.row_major else "F"
    return np.ascontiguousarray(flat.reshape(header.shape, order=order))


def _read_data_bytes(header: ArrayHeader, path: str | Path) -> bytes:
    try:
        return header.data_file.read_bytes()
    except FileNotFoundError as error:
        raise HDVizCodecError(
            f"Data file {header.data_file} referenced by {path} not found.",
            path=path,
        ) from error
    except OSError as error:
        raise HDVizCodecError(
            f"Failed to read data file {header.data_file}: {error}.",
            path=path,
        ) from error


def _write_payload(header_path: Path, kind: ArrayKind, array: np.ndarray) -> None:
    if array.dtype.kind not in "iuf":
        raise HDVizCodecError(
            f"Cannot write non-numeric array of {array.dtype} to {header_path}.",
            path=header_path,
        )
    data_path = _data_path_for(header_path)
    little_endian = array.astype(array.dtype.newbyteorder("<"), copy=False)
    data_path.write_bytes(little_endian.tobytes(order="F"))
    _write_header(header_path, kind, array.shape, array.dtype.itemsize, data_path)


def _write_header(
    header_path: Path,
    kind: ArrayKind,
    shape: tuple[int, ...],
    element_size: int | str,
    data_path: Path,
) -> None:
    size = " x ".join(str(extent) for extent in shape)
    lines = [
        kind,
        f"Size: {size}",
        f"ElementSize: {element_size}",
        "RowMajor: false",
        f"DataFile: {data_path.name}",
    ]
    header_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _data_path_for(header_path: Path) -> Path:
    """Return the data file written beside a header, e.g. Geom.data for Geom.data.hdr."""
    if header_path.name.endswith(".hdr"):
        return header_path.with_name(header_path.name[: -len(".hdr")])
    return header_path.with_name(header_path.name + DATA_SUFFIX)


class FileArrayReader:
    """Reads named array files relative to one dataset directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        """Dataset directory."""
        return self._root

    def path(self, name: str) -> Path:
        """Resolve a file name against the dataset directory."""
        return self._root / name

    def exists(self, name: str) -> bool:
        """Return whether the named header and its data file both exist."""
        header_path = self.path(name)
        if not header_path.is_file():
            return False
        if not header_path.name.endswith(".hdr"):
            return True
        try:
            return read_header(header_path).data_file.is_file()
        except HDVizCodecError:
            return False

    def read_vector(self, name: str, dtype: np.dtype | type = np.float64) -> np.ndarray:
        """Read a numeric vector by file name."""
        return read_vector(self.path(name), dtype)

    def read_matrix(self, name: str, dtype: np.dtype | type = np.float64) -> np.ndarray:
        """Read a numeric matrix by file name."""
        return read_matrix(self.path(name), dtype)

    def read_lines(self, name: str) -> list[str] | None:
        """Read a plain text file as lines, or ``None`` when it does not exist.

        Bytes that are not valid UTF-8 decode to U+FFFD.

        Raises:
            HDVizCodecError: If the file exists but cannot be read.
        """
        text_path = self.path(name)
        try:
            raw = text_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as error:
            raise HDVizCodecError(
                f"Failed to read {text_path}: {error}.", path=text_path
            ) from error
        return raw.decode("utf-8", errors="replace").splitlines()
