"""Base map document loading and SVG province geometry extraction."""

from __future__ import annotations

import logging
import math
import re
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from .errors import GeometrySourceUnavailable, LoadCancelled
from .models import Point
from .projection import Viewport

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")

_LOGGER = logging.getLogger("depotmap.basemap")

_SVG_MARKUP_RE = re.compile(r"<svg\b.*?</svg\s*>", re.IGNORECASE | re.DOTALL)
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_TRANSFORM_RE = re.compile(r"\s*,?\s*(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)")
_PATH_COMMANDS = "MmLlHhVvCcSsQqTtAaZz"
_PATH_SEPARATORS = " \t\r\n,"
_PARAM_COUNTS = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7}
# Positions of the large-arc and sweep flags within an arc segment.
_ARC_FLAG_SLOTS = (3, 4)
_CURVE_SAMPLES = 8

# Affine transform (a, b, c, d, e, f): x' = a*x + c*y + e, y' = b*x + d*y + f.
Matrix = tuple[float, float, float, float, float, float]
IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def svg_tag(name: str) -> str:
    return f"{{{SVG_NS}}}{name}"


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


@dataclass(frozen=True, slots=True)
class RawRegion:
    """Province geometry as read from the base map, before registry derivation."""

    id: str
    display_name: str
    subpaths: tuple[tuple[Point, ...], ...]


@dataclass(frozen=True, slots=True)
class BaseMapDocument:
    root: ET.Element
    container_id: str
    regions: tuple[RawRegion, ...]


class BaseMapRepository:
    """Thin wrapper around base map access (local file or http(s) URL)."""

    def __init__(
        self,
        source: str | Path,
        *,
        container_id: str = "turkiye",
        name_attribute: str = "data-iladi",
        timeout_s: float = 30.0,
        session: Any | None = None,
    ) -> None:
        self.source = str(source)
        self.container_id = container_id
        self.name_attribute = name_attribute
        self.timeout_s = timeout_s
        self._session = session

    def load(self, *, cancel_event: threading.Event | None = None) -> BaseMapDocument:
        """Read and parse the document once.

        Raises GeometrySourceUnavailable on any load/parse failure and
        LoadCancelled when `cancel_event` is set before parsing finishes.
        """
        text = self._read_text()
        _raise_if_cancelled(cancel_event)
        root = self._parse_svg(text)
        self._check_view_box(root)
        try:
            found = _find_with_transform(root, self.container_id)
        except ValueError as exc:
            raise GeometrySourceUnavailable(f"Invalid transform in {self.source}: {exc}") from exc
        if found is None:
            raise GeometrySourceUnavailable(
                f"Region container '#{self.container_id}' not found in {self.source}"
            )
        container, container_matrix = found

        regions: list[RawRegion] = []
        seen_ids: set[str] = set()
        for group in container:
            if local_name(group.tag) != "g" or not group.get("id"):
                continue
            _raise_if_cancelled(cancel_event)
            raw_id = str(group.get("id")).strip()
            region_id = raw_id.lower()
            if region_id in seen_ids:
                raise GeometrySourceUnavailable(
                    f"Duplicate region id '{region_id}' under '#{self.container_id}' in {self.source}"
                )
            seen_ids.add(region_id)
            display_name = (group.get(self.name_attribute) or raw_id).strip()
            try:
                subpaths = _group_subpaths(group, container_matrix, raw_id)
            except ValueError as exc:
                raise GeometrySourceUnavailable(
                    f"Invalid transform in region '{raw_id}' of {self.source}: {exc}"
                ) from exc
            if not subpaths:
                _LOGGER.warning("Region '%s' has no drawable geometry; skipped.", raw_id)
                continue
            regions.append(RawRegion(id=region_id, display_name=display_name, subpaths=tuple(subpaths)))

        if not regions:
            raise GeometrySourceUnavailable(f"No region groups found under '#{self.container_id}'")
        _LOGGER.info("Loaded %d regions from %s", len(regions), self.source)
        return BaseMapDocument(root=root, container_id=self.container_id, regions=tuple(regions))

    def _read_text(self) -> str:
        if self.source.startswith(("http://", "https://")):
            session = self._session or requests.Session()
            try:
                response = session.get(self.source, timeout=self.timeout_s)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise GeometrySourceUnavailable(f"Failed fetching base map {self.source}: {exc}") from exc
            return response.text
        path = Path(self.source)
        if not path.exists():
            raise GeometrySourceUnavailable(f"Base map file not found: {path}")
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise GeometrySourceUnavailable(f"Failed reading base map {path}: {exc}") from exc

    def _parse_svg(self, text: str) -> ET.Element:
        match = _SVG_MARKUP_RE.search(text)
        if match is None:
            raise GeometrySourceUnavailable(f"No <svg> element in {self.source}")
        try:
            root = ET.fromstring(match.group(0))
        except ET.ParseError as exc:
            raise GeometrySourceUnavailable(f"Invalid SVG markup in {self.source}: {exc}") from exc
        if local_name(root.tag) != "svg":
            raise GeometrySourceUnavailable(f"Root element is not <svg> in {self.source}")
        return root

    def _check_view_box(self, root: ET.Element) -> None:
        raw = root.get("viewBox")
        if raw is None:
            return
        try:
            Viewport.from_view_box(raw)
        except ValueError as exc:
            raise GeometrySourceUnavailable(f"Unusable viewBox in {self.source}: {exc}") from exc


def load_base_map(
    source: str | Path,
    *,
    container_id: str = "turkiye",
    cancel_event: threading.Event | None = None,
    timeout_s: float = 30.0,
) -> BaseMapDocument:
    repo = BaseMapRepository(source, container_id=container_id, timeout_s=timeout_s)
    return repo.load(cancel_event=cancel_event)


def parse_path_points(d: str) -> list[list[Point]]:
    """Flatten SVG path data into point lists, one per subpath.

    Bezier segments are sampled; elliptical arcs contribute their endpoint,
    so an arc that bulges past its endpoints is under-represented in the
    region bounds. Coordinates are in the path's own user space; callers
    apply `transform` attributes.
    """
    tokens = _tokenize_path(d)
    subpaths: list[list[Point]] = []
    current: list[Point] = []
    x = y = 0.0
    start = (0.0, 0.0)
    last_cubic: Point | None = None
    last_quad: Point | None = None
    cmd: str | None = None
    idx = 0

    while idx < len(tokens):
        token = tokens[idx]
        if token.isalpha():
            cmd = token
            idx += 1
            if cmd in "Zz":
                if current:
                    current.append(start)
                    subpaths.append(current)
                    current = []
                x, y = start
                last_cubic = last_quad = None
                continue
        elif cmd is None or cmd in "Zz":
            raise ValueError(f"Path data has coordinates without a command near '{token}'")

        upper = cmd.upper()
        count = _PARAM_COUNTS[upper]
        args = tokens[idx : idx + count]
        if len(args) < count or any(arg.isalpha() for arg in args):
            raise ValueError(f"Truncated '{cmd}' segment in path data")
        values = [float(arg) for arg in args]
        idx += count
        rel = cmd.islower()
        ox, oy = (x, y) if rel else (0.0, 0.0)

        if upper == "M":
            if current:
                subpaths.append(current)
            x, y = ox + values[0], oy + values[1]
            start = (x, y)
            current = [start]
            cmd = "l" if rel else "L"
            last_cubic = last_quad = None
            continue

        if not current:
            current = [(x, y)]

        if upper == "L":
            x, y = ox + values[0], oy + values[1]
            current.append((x, y))
            last_cubic = last_quad = None
        elif upper == "H":
            x = (x if rel else 0.0) + values[0]
            current.append((x, y))
            last_cubic = last_quad = None
        elif upper == "V":
            y = (y if rel else 0.0) + values[0]
            current.append((x, y))
            last_cubic = last_quad = None
        elif upper in ("C", "S"):
            if upper == "C":
                c1 = (ox + values[0], oy + values[1])
                rest = values[2:]
            else:
                c1 = _reflect(last_cubic, (x, y))
                rest = values
            c2 = (ox + rest[0], oy + rest[1])
            end = (ox + rest[2], oy + rest[3])
            current.extend(_sample_cubic((x, y), c1, c2, end))
            x, y = end
            last_cubic, last_quad = c2, None
        elif upper in ("Q", "T"):
            if upper == "Q":
                c1 = (ox + values[0], oy + values[1])
                end = (ox + values[2], oy + values[3])
            else:
                c1 = _reflect(last_quad, (x, y))
                end = (ox + values[0], oy + values[1])
            current.extend(_sample_quadratic((x, y), c1, end))
            x, y = end
            last_cubic, last_quad = None, c1
        elif upper == "A":
            x, y = ox + values[5], oy + values[6]
            current.append((x, y))
            last_cubic = last_quad = None

    if current:
        subpaths.append(current)
    return subpaths


def _reflect(control: Point | None, about: Point) -> Point:
    if control is None:
        return about
    return (2 * about[0] - control[0], 2 * about[1] - control[1])


def _sample_cubic(p0: Point, p1: Point, p2: Point, p3: Point) -> list[Point]:
    out: list[Point] = []
    for step in range(1, _CURVE_SAMPLES + 1):
        t = step / _CURVE_SAMPLES
        mt = 1.0 - t
        a, b, c, e = mt**3, 3 * mt * mt * t, 3 * mt * t * t, t**3
        out.append(
            (
                a * p0[0] + b * p1[0] + c * p2[0] + e * p3[0],
                a * p0[1] + b * p1[1] + c * p2[1] + e * p3[1],
            )
        )
    return out


def _sample_quadratic(p0: Point, p1: Point, p2: Point) -> list[Point]:
    out: list[Point] = []
    for step in range(1, _CURVE_SAMPLES + 1):
        t = step / _CURVE_SAMPLES
        mt = 1.0 - t
        a, b, c = mt * mt, 2 * mt * t, t * t
        out.append((a * p0[0] + b * p1[0] + c * p2[0], a * p0[1] + b * p1[1] + c * p2[1]))
    return out


def _tokenize_path(d: str) -> list[str]:
    """Split path data into command letters and number strings.

    Arc flags are single characters, so `a1 1 0 011 1` yields the flags
    `0`, `1` and then the number `1`.
    """
    tokens: list[str] = []
    upper: str | None = None
    slot = 0
    pos = 0
    while pos < len(d):
        ch = d[pos]
        if ch in _PATH_SEPARATORS:
            pos += 1
            continue
        if ch in _PATH_COMMANDS:
            tokens.append(ch)
            upper = ch.upper()
            slot = 0
            pos += 1
            continue
        if upper == "A" and slot % 7 in _ARC_FLAG_SLOTS:
            if ch not in "01":
                raise ValueError(f"Invalid arc flag '{ch}' in path data")
            tokens.append(ch)
            slot += 1
            pos += 1
            continue
        match = _NUMBER_RE.match(d, pos)
        if match is None:
            raise ValueError(f"Unexpected character '{ch}' in path data")
        tokens.append(match.group(0))
        slot += 1
        pos = match.end()
    return tokens


def parse_transform(value: str | None) -> Matrix:
    """Compose an SVG `transform` attribute into one affine matrix."""
    if not value or not value.strip():
        return IDENTITY
    matrix = IDENTITY
    pos = 0
    text = value.strip()
    while pos < len(text):
        match = _TRANSFORM_RE.match(text, pos)
        if match is None:
            raise ValueError(f"Unsupported transform '{value}'")
        name = match.group(1)
        args = [float(arg) for arg in _NUMBER_RE.findall(match.group(2))]
        matrix = multiply(matrix, _transform_step(name, args, value))
        pos = match.end()
        while pos < len(text) and text[pos] in _PATH_SEPARATORS:
            pos += 1
    return matrix


def _transform_step(name: str, args: list[float], raw: str) -> Matrix:
    if name == "matrix" and len(args) == 6:
        return (args[0], args[1], args[2], args[3], args[4], args[5])
    if name == "translate" and len(args) in (1, 2):
        return (1.0, 0.0, 0.0, 1.0, args[0], args[1] if len(args) == 2 else 0.0)
    if name == "scale" and len(args) in (1, 2):
        return (args[0], 0.0, 0.0, args[1] if len(args) == 2 else args[0], 0.0, 0.0)
    if name == "rotate" and len(args) in (1, 3):
        angle = math.radians(args[0])
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        rotation: Matrix = (cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
        if len(args) == 1:
            return rotation
        cx, cy = args[1], args[2]
        return multiply(
            multiply((1.0, 0.0, 0.0, 1.0, cx, cy), rotation),
            (1.0, 0.0, 0.0, 1.0, -cx, -cy),
        )
    if name == "skewX" and len(args) == 1:
        return (1.0, 0.0, math.tan(math.radians(args[0])), 1.0, 0.0, 0.0)
    if name == "skewY" and len(args) == 1:
        return (1.0, math.tan(math.radians(args[0])), 0.0, 1.0, 0.0, 0.0)
    raise ValueError(f"Bad arguments for {name}() in transform '{raw}'")


def multiply(outer: Matrix, inner: Matrix) -> Matrix:
    """Matrix that applies `inner` first, then `outer`."""
    a1, b1, c1, d1, e1, f1 = outer
    a2, b2, c2, d2, e2, f2 = inner
    return (
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def apply_matrix(matrix: Matrix, point: Point) -> Point:
    a, b, c, d, e, f = matrix
    x, y = point
    return (a * x + c * y + e, b * x + d * y + f)


def _group_subpaths(group: ET.Element, parent: Matrix, region_id: str) -> list[tuple[Point, ...]]:
    """Path geometry of one region group in root user space."""
    out: list[tuple[Point, ...]] = []
    matrix = multiply(parent, parse_transform(group.get("transform")))
    for child in group:
        name = local_name(child.tag)
        if name in ("g", "a", "switch"):
            out.extend(_group_subpaths(child, matrix, region_id))
            continue
        if name != "path":
            continue
        d = child.get("d")
        if not d:
            continue
        path_matrix = multiply(matrix, parse_transform(child.get("transform")))
        try:
            parsed = parse_path_points(d)
        except ValueError as exc:
            _LOGGER.warning("Skipping malformed path in region '%s': %s", region_id, exc)
            continue
        if path_matrix == IDENTITY:
            out.extend(tuple(points) for points in parsed)
        else:
            out.extend(tuple(apply_matrix(path_matrix, p) for p in points) for points in parsed)
    return out


def _find_chain(element: ET.Element, element_id: str) -> list[ET.Element] | None:
    if element.get("id") == element_id:
        return [element]
    for child in element:
        chain = _find_chain(child, element_id)
        if chain is not None:
            return [element, *chain]
    return None


def _find_with_transform(root: ET.Element, element_id: str) -> tuple[ET.Element, Matrix] | None:
    """Locate `element_id` and the accumulated transform of its ancestors and itself."""
    chain = _find_chain(root, element_id)
    if chain is None:
        return None
    matrix = IDENTITY
    for element in chain:
        matrix = multiply(matrix, parse_transform(element.get("transform")))
    return chain[-1], matrix


def _raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise LoadCancelled("Base map load cancelled")
