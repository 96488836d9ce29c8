import re
from pathlib import Path

CANONICAL_STOCK_WRITER = "bomtrack/services/material_service.py"


def test_no_direct_stock_mutations_outside_material_service():
    root = Path(__file__).resolve().parents[1] / "bomtrack"
    pattern = re.compile(r"\.current_stock\s*(=(?!=)|[+\-]=)")
    violations = []

    for path in root.rglob("*.py"):
        rel_path = path.relative_to(root.parent).as_posix()
        if rel_path == CANONICAL_STOCK_WRITER:
            continue

        text = path.read_text(encoding="utf-8")
        for match in pattern.finditer(text):
            line_start = text.rfind("\n", 0, match.start()) + 1
            line_end = text.find("\n", match.start())
            if line_end == -1:
                line_end = len(text)
            line_text = text[line_start:line_end].strip()
            # alert snapshots copy stock, they never change it
            if line_text.startswith("alert.current_stock"):
                continue
            violations.append(f"{rel_path}: {line_text}")

    assert not violations, (
        "Direct stock mutations detected outside the material service. Route these "
        "through bomtrack.services.material_service.adjust_stock: \n- "
        + "\n- ".join(violations)
    )
