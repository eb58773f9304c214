from datetime import date

import pandas as pd

from scoring.permit_signal import derive_system_permit_signal

PERMITS = [
    {"permit_number": "M-100", "description": "HVAC change out 3 ton", "date_issued": "2019-03-02", "date_finaled": "2019-04-10"},
    {"permit_number": "B-200", "description": "Re-roof with architectural shingle", "date_issued": "2021-01-15"},
    {"permit_number": "M-050", "description": "New HVAC system install", "date_issued": "2012-07-01"},
]


def test_latest_hvac_replacement_wins():
    sig = derive_system_permit_signal("hvac", PERMITS)
    assert sig["verified"] is True
    assert sig["install_year"] == 2019
    assert sig["install_source"] == "permit_replacement"
    assert sig["permit_number"] == "M-100"
    assert sig["confidence_boost"] == 0.25
    assert sig["signal_version"] == "v2"


def test_new_install_and_roof():
    sig = derive_system_permit_signal("hvac", PERMITS[2:])
    assert sig["install_source"] == "permit_install"
    assert sig["confidence_boost"] == 0.30
    roof = derive_system_permit_signal("roof", PERMITS)
    assert roof["install_year"] == 2021
    assert roof["install_source"] == "permit_replacement"


def test_mechanical_permit_counts_for_hvac():
    sig = derive_system_permit_signal("hvac", [
        {"permit_type": "Mechanical", "description": "Duct modification", "date_issued": "2018-05-05"},
    ])
    assert sig["verified"] is True
    assert sig["install_source"] is None
    assert sig["confidence_boost"] == 0.15


def test_no_signal_cases():
    assert derive_system_permit_signal("hvac", [])["verified"] is False
    assert derive_system_permit_signal("electrical", PERMITS)["verified"] is False
    undated = [{"description": "HVAC replace"}]
    assert derive_system_permit_signal("hvac", undated)["verified"] is False
    assert derive_system_permit_signal("water_heater", PERMITS)["confidence_boost"] == 0


def test_mixed_naive_and_offset_dates_compare():
    sig = derive_system_permit_signal("hvac", [
        {"description": "HVAC replace", "date_issued": "2019-03-02"},
        {"description": "HVAC change out", "date_issued": "2021-05-01T12:00:00Z"},
    ])
    assert sig["install_year"] == 2021
    assert sig["permit_description"] == "HVAC change out"


def test_offset_is_normalized_to_utc():
    sig = derive_system_permit_signal("roof", [
        {"description": "Reroof", "date_issued": "2021-01-01T01:00:00+05:00"},
        {"description": "Roof tear-off", "date_issued": date(2020, 12, 31)},
    ])
    # 2020-12-31T20:00Z is later than midnight of the same day
    assert sig["install_year"] == 2020
    assert sig["permit_description"] == "Reroof"


def test_missing_finaled_falls_back_to_issued():
    for missing in (None, float("nan"), pd.NaT):
        sig = derive_system_permit_signal("hvac", [
            {"description": "HVAC replace", "date_finaled": missing, "date_issued": pd.Timestamp("2019-03-02")},
        ])
        assert sig["verified"] is True
        assert sig["install_year"] == 2019


def test_finaled_outranks_issued():
    sig = derive_system_permit_signal("hvac", [
        {"description": "HVAC replace", "date_issued": "2018-11-20", "date_finaled": "2019-02-01"},
    ])
    assert sig["install_year"] == 2019
