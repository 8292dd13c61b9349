"""Report-fragment builders for the history forms.

String assembly from form selections, plus the family-history condition lists the
forms offer. The forms decide where the text goes.
"""

from __future__ import annotations

import os
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from .logger import logger

PMH_HEADER = "Past Medical History-----------"
PMH_EMPTY = "PMH>\n(No items selected)"
ALL_DENIED_ALLERGIES = "All denied allergies..."

PMH_CONDITIONS: List[str] = [
    "Hypertension", "Dyslipidemia", "Diabetes Mellitus",
    "Thyroid Disease", "Asthma / COPD", "Pneumonia", "Tuberculosis (TB)",
    "Cardiovascular Disease", "AMI", "Angina Pectoris", "Arrhythmia",
    "Cerebrovascular Disease (CVA)", "Parkinson's Disease", "Cognitive Disorder", "Hearing Loss",
    "Chronic Kidney Disease (CKD)", "Gout", "Arthritis",
    "Cancer Hx", "Operation Hx",
    "GERD", "Hepatitis A / B",
    "Depression",
    "Allergy", "Food Allergy", "Injection Allergy", "Medication Allergy",
    ALL_DENIED_ALLERGIES,
    "Others",
]

# Default family-history condition columns, used when no list file is present
FMH_DEFAULTS: Dict[str, List[str]] = {
    "Endocrine": ["Type 1 Diabetes", "Type 2 Diabetes", "Hypothyroidism", "Hyperthyroidism", "Thyroid Cancer"],
    "Cancer": ["Breast Cancer", "Lung Cancer", "Prostate Cancer", "Colon Cancer", "Skin Cancer"],
    "Cardiovascular": ["Coronary Artery Disease", "Hypertension", "Heart Attack", "Stroke", "Arrhythmia"],
    "Genetic": ["Cystic Fibrosis", "Huntington's Disease", "Down Syndrome", "Sickle Cell Anemia", "Hemophilia"],
}


def build_pmh_summary(
    conditions: Sequence[str],
    checked: Sequence[str],
    notes: Optional[Mapping[str, str]] = None,
    apply_save_logic: bool = False,
    today: Optional[date] = None,
) -> str:
    """Past-history summary for the selected conditions.

    A condition is listed when checked or annotated. With apply_save_logic, a checked
    "All denied allergies..." becomes a dated denial sentence. While it is checked the
    individual allergy lines are left out.
    """
    notes = notes or {}
    selected = set(checked)
    all_denied = ALL_DENIED_ALLERGIES in selected
    lines: List[str] = []

    for name in conditions:
        is_checked = name in selected
        note = (notes.get(name) or "").strip()
        if not is_checked and not note:
            continue
        if apply_save_logic and name == ALL_DENIED_ALLERGIES and is_checked:
            stamp = (today or date.today()).isoformat()
            lines.append(
                f"• Allergy: As of {stamp}, the patient denies any known allergies "
                "to food, injections, or medications."
            )
            continue
        if all_denied and "Allergy" in name and name != ALL_DENIED_ALLERGIES:
            continue
        line = f"• {'▣' if is_checked else '□'} {name}"
        if note:
            line += ": " + note.replace("\n", " | ")
        lines.append(line)

    if not lines:
        return PMH_EMPTY
    return PMH_HEADER + "\n" + "".join(line + "\n" for line in lines)


def build_fmh_entry(
    relationship: Optional[str],
    notes: Optional[str],
    selections: Mapping[str, Sequence[str]],
) -> str:
    """Family-history entry for one relative; columns keep the order given.

    Raises ValueError when no relationship is chosen or nothing was entered.
    """
    if not relationship or not relationship.strip():
        raise ValueError("Please select a relationship.")
    note = (notes or "").strip()
    lines = [f"{relationship}:"]
    if note:
        lines.append(f"  Notes: {note}")
    has_condition = False
    for column, chosen in selections.items():
        if chosen:
            has_condition = True
            lines.append(f"  {column.replace(':', '')}: {'; '.join(chosen)}")
    if not has_condition and not note:
        raise ValueError("Please select at least one condition or add notes.")
    return "\n".join(lines)


def load_condition_lists(data_dir: Optional[str]) -> Dict[str, List[str]]:
    """Family-history columns from `<column>.txt` files (one condition per line).

    A column whose file is missing or unreadable keeps its default list.
    """
    lists: Dict[str, List[str]] = {}
    for column, defaults in FMH_DEFAULTS.items():
        path = os.path.join(data_dir, f"{column.lower()}.txt") if data_dir else None
        values = list(defaults)
        if path and os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    values = [ln.rstrip("\r\n") for ln in f if ln.strip()]
            except OSError as e:
                logger.warning(f"Using default {column} conditions; could not read {path}: {e}")
        lists[column] = values
    return lists
