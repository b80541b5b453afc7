import json
from functools import lru_cache
from pathlib import Path

from django.conf import settings

BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


def _load(filename):
    path = Path(settings.REFERENCE_DATA_DIR) / filename
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


# Loaded once per process, not on every request
@lru_cache(maxsize=None)
def districts():
    return _load("districts.json")


@lru_cache(maxsize=None)
def upazilas():
    return _load("upazilas.json")


def upazilas_by_district(district_id):
    return [u for u in upazilas() if u["district_id"] == str(district_id)]


def is_blood_group(value):
    return value in BLOOD_GROUPS
