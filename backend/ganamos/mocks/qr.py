"""Mock QR Server — deterministic SVG stand-ins for api.qrserver.com.

Invariants:
    - Same (data, size) always yields the same SVG (results are cached)
    - Pattern comes from a 32-bit string hash on a 10x10 grid; a cell is filled
      when (hash + 7x + 13y) % 100 > 50, except under the three corner markers
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

DEFAULT_SIZE = "200x200"
SIZE_PATTERN = re.compile(r"^\d+x\d+$")
GRID = 10


def hash_string(value: str) -> int:
    """Java-style 31-multiplier hash folded to signed 32 bits, then abs()."""
    h = 0
    units = value.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = int.from_bytes(units[i:i + 2], "little")
        h = (h * 31 + code) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def _in_corner(x: int, y: int) -> bool:
    return (x < 3 and y < 3) or (x > 6 and y < 3) or (x < 3 and y > 6)


def _corner_marker(x: int, y: int, cell: int) -> str:
    return (
        f'<rect x="{x * cell}" y="{y * cell}" width="{cell * 3}" '
        f'height="{cell * 3}" fill="black"/>'
        f'<rect x="{(x + 1) * cell}" y="{(y + 1) * cell}" width="{cell}" '
        f'height="{cell}" fill="white"/>'
    )


def render_svg(data: str, size: str) -> str:
    width, height = (int(part) for part in size.split("x"))
    digest = hash_string(data)
    cell = width // GRID
    cells = "".join(
        f'<rect x="{x * cell}" y="{y * cell}" width="{cell}" height="{cell}" fill="black"/>'
        for y in range(GRID)
        for x in range(GRID)
        if (digest + x * 7 + y * 13) % 100 > 50 and not _in_corner(x, y)
    )
    corners = "".join(_corner_marker(x, y, cell) for x, y in ((0, 0), (7, 0), (0, 7)))
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">\n'
        f'  <rect width="{width}" height="{height}" fill="white"/>\n'
        f"  {corners}\n"
        f"  {cells}\n"
        f'  <text x="{width / 2:g}" y="{height - 10}" text-anchor="middle" '
        f'font-family="Arial" font-size="12" fill="gray" opacity="0.5">MOCK</text>\n'
        f"</svg>"
    )


@dataclass
class QRCodeRecord:
    id: int
    data: str
    size: str
    svg: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MockQRServerStore:
    def __init__(self):
        self._codes: dict[tuple[str, str], QRCodeRecord] = {}
        self._counter = 1

    def generate(self, data: str, size: str = DEFAULT_SIZE) -> str:
        key = (data, size)
        cached = self._codes.get(key)
        if cached is not None:
            return cached.svg
        record = QRCodeRecord(
            id=self._counter, data=data[:100], size=size, svg=render_svg(data, size),
        )
        self._counter += 1
        self._codes[key] = record
        return record.svg

    def records(self) -> list[QRCodeRecord]:
        return list(self._codes.values())

    def stats(self) -> dict:
        return {"totalGenerated": self._counter - 1, "cached": len(self._codes)}

    def reset(self) -> None:
        self._codes.clear()
        self._counter = 1


mock_qr_store = MockQRServerStore()
