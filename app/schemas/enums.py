"""
Shared enumerations
HealthMate API
"""

from enum import Enum


class ReportType(str, Enum):
    BLOOD_TEST = "blood_test"
    URINE_TEST = "urine_test"
    X_RAY = "x_ray"
    CT_SCAN = "ct_scan"
    MRI = "mri"
    ULTRASOUND = "ultrasound"
    ECG = "ecg"
    PRESCRIPTION = "prescription"
    DISCHARGE_SUMMARY = "discharge_summary"
    CONSULTATION = "consultation"
    OTHER = "other"


class FileStatus(str, Enum):
    UPLOADED = "uploaded"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    FAILED = "failed"


class VitalType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"
    WEIGHT = "weight"
    HEIGHT = "height"
    BLOOD_SUGAR = "blood_sugar"
    OXYGEN_SATURATION = "oxygen_saturation"
    RESPIRATORY_RATE = "respiratory_rate"
    BMI = "bmi"
    WAIST_CIRCUMFERENCE = "waist_circumference"
    BODY_FAT_PERCENTAGE = "body_fat_percentage"
    SLEEP_HOURS = "sleep_hours"
    STEPS = "steps"
    CALORIES_BURNED = "calories_burned"
    WATER_INTAKE = "water_intake"
    MOOD = "mood"
    ENERGY_LEVEL = "energy_level"
    PAIN_LEVEL = "pain_level"
    STRESS_LEVEL = "stress_level"
    OTHER = "other"


class VitalUnit(str, Enum):
    MMHG = "mmHg"
    BPM = "bpm"
    CELSIUS = "°C"
    FAHRENHEIT = "°F"
    KG = "kg"
    LBS = "lbs"
    CM = "cm"
    FT = "ft"
    IN = "in"
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"
    PERCENT = "%"
    KG_M2 = "kg/m²"
    HOURS = "hours"
    STEPS = "steps"
    CALORIES = "calories"
    LITERS = "liters"
    ML = "ml"
    CUPS = "cups"
    SCALE_1_10 = "scale_1_10"
    SCALE_1_5 = "scale_1_5"
    TEXT = "text"


class VitalSource(str, Enum):
    MANUAL = "manual"
    DEVICE = "device"
    IMPORTED = "imported"
    CALCULATED = "calculated"


class VitalLocation(str, Enum):
    HOME = "home"
    HOSPITAL = "hospital"
    CLINIC = "clinic"
    PHARMACY = "pharmacy"
    OTHER = "other"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class LanguagePreference(str, Enum):
    EN = "en"
    UR = "ur"
    BOTH = "both"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


# Subjective scales carry text, blood pressure a systolic/diastolic pair,
# everything else a single number.
TEXT_VITAL_TYPES = frozenset({
    VitalType.MOOD, VitalType.ENERGY_LEVEL, VitalType.PAIN_LEVEL, VitalType.STRESS_LEVEL,
})

_SCALE_UNITS = (VitalUnit.SCALE_1_10, VitalUnit.SCALE_1_5, VitalUnit.TEXT)

# First unit is the default when a reading omits its unit.
VITAL_UNITS = {
    VitalType.BLOOD_PRESSURE: (VitalUnit.MMHG,),
    VitalType.HEART_RATE: (VitalUnit.BPM,),
    VitalType.TEMPERATURE: (VitalUnit.CELSIUS, VitalUnit.FAHRENHEIT),
    VitalType.WEIGHT: (VitalUnit.KG, VitalUnit.LBS),
    VitalType.HEIGHT: (VitalUnit.CM, VitalUnit.FT, VitalUnit.IN),
    VitalType.BLOOD_SUGAR: (VitalUnit.MG_DL, VitalUnit.MMOL_L),
    VitalType.OXYGEN_SATURATION: (VitalUnit.PERCENT,),
    VitalType.RESPIRATORY_RATE: (VitalUnit.BPM,),
    VitalType.BMI: (VitalUnit.KG_M2,),
    VitalType.WAIST_CIRCUMFERENCE: (VitalUnit.CM, VitalUnit.IN),
    VitalType.BODY_FAT_PERCENTAGE: (VitalUnit.PERCENT,),
    VitalType.SLEEP_HOURS: (VitalUnit.HOURS,),
    VitalType.STEPS: (VitalUnit.STEPS,),
    VitalType.CALORIES_BURNED: (VitalUnit.CALORIES,),
    VitalType.WATER_INTAKE: (VitalUnit.LITERS, VitalUnit.ML, VitalUnit.CUPS),
    VitalType.MOOD: _SCALE_UNITS,
    VitalType.ENERGY_LEVEL: _SCALE_UNITS,
    VitalType.PAIN_LEVEL: _SCALE_UNITS,
    VitalType.STRESS_LEVEL: _SCALE_UNITS,
    VitalType.OTHER: tuple(VitalUnit),
}

# Accepted range for paired readings, per unit.
PAIRED_VALUE_RANGES = {
    VitalUnit.MMHG: (40, 300),
}
