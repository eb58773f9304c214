SYSTEM_DISPLAY_NAMES = {
    "hvac": "HVAC",
    "roof": "Roof",
    "water_heater": "Water Heater",
    "electrical": "Electrical",
    "plumbing": "Plumbing",
    "foundation": "Foundation",
    "exterior": "Exterior",
}


def system_display_name(kind: str) -> str:
    return SYSTEM_DISPLAY_NAMES.get(kind, kind.replace("_", " ").title())


def fmt_money(x):
    try:
        return f"${x:,.0f}"
    except Exception:
        return "-"


def fmt_pct(x):
    try:
        return f"{x * 100:.0f}%"
    except Exception:
        return "-"
