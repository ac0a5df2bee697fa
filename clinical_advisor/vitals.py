import math
from typing import List, Optional

from .schemas import VitalsProfile, VitalSign


def _number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def heart_rate_status(bpm: float) -> str:
    if bpm > 110 or bpm < 50:
        return "danger"
    if bpm > 100 or bpm < 60:
        return "warning"
    return "normal"


def spo2_status(percent: float) -> str:
    if percent < 92:
        return "danger"
    if percent < 95:
        return "warning"
    return "normal"


def blood_pressure_status(systolic: Optional[float], diastolic: Optional[float]) -> str:
    # A missing component never trips a threshold.
    sys_ = systolic if systolic is not None else 0
    dia = diastolic if diastolic is not None else 0
    if sys_ > 160 or dia > 100:
        return "danger"
    if sys_ > 130 or dia > 85:
        return "warning"
    return "normal"


def assess_vitals(profile: VitalsProfile) -> List[VitalSign]:
    """
    Classify the entered vitals against static thresholds.

    Only fields with an entered value appear in the output. Entries that are
    not numbers get status "unknown", as does temperature, which has no
    thresholds.
    """
    signs: List[VitalSign] = []

    hr = profile.heart_rate.strip()
    if hr:
        bpm = _number(hr)
        signs.append(VitalSign(
            key="heart_rate", label="Heart Rate", value=hr, unit="bpm",
            status=heart_rate_status(bpm) if bpm is not None else "unknown",
        ))

    sys_raw, dia_raw = profile.systolic.strip(), profile.diastolic.strip()
    if sys_raw or dia_raw:
        systolic, diastolic = _number(sys_raw), _number(dia_raw)
        unparsable = (sys_raw and systolic is None) or (dia_raw and diastolic is None)
        signs.append(VitalSign(
            key="blood_pressure", label="Blood Pressure",
            value=f"{sys_raw or '--'}/{dia_raw or '--'}", unit="mmHg",
            status="unknown" if unparsable else blood_pressure_status(systolic, diastolic),
        ))

    spo2 = profile.spo2.strip()
    if spo2:
        percent = _number(spo2)
        signs.append(VitalSign(
            key="spo2", label="SpO2", value=spo2, unit="%",
            status=spo2_status(percent) if percent is not None else "unknown",
        ))

    temp = profile.temperature.strip()
    if temp:
        signs.append(VitalSign(
            key="temperature", label="Temperature", value=temp, unit="°C",
            status="unknown",
        ))

    return signs
