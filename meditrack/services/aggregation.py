"""
Row aggregation: flat listing rows to patient records.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from meditrack.models import DoctorSummary, PatientRecord, PatientVisitRow, VisitRecord


@dataclass
class _PatientRecordBuilder:
    patient_id: int
    first_name: str
    last_name: str
    visits: List[VisitRecord] = field(default_factory=list)

    def build(self) -> PatientRecord:
        return PatientRecord(
            patient_id=self.patient_id,
            first_name=self.first_name,
            last_name=self.last_name,
            visits=tuple(self.visits),
        )


class RowAggregator:
    """
    Folds listing rows into one record per patient.

    Patients come out in first-seen order and each keeps its visits in row
    order. Rows are trusted to carry at most one visit per (patient,
    doctor) pair; duplicates are not collapsed.
    """

    def aggregate(self, rows: Iterable[PatientVisitRow]) -> List[PatientRecord]:
        builders: Dict[int, _PatientRecordBuilder] = {}

        for row in rows:
            builder = builders.get(row.patient_id)
            if builder is None:
                builder = _PatientRecordBuilder(
                    patient_id=row.patient_id,
                    first_name=row.patient_first_name,
                    last_name=row.patient_last_name,
                )
                builders[row.patient_id] = builder

            if row.visit_id is not None:
                builder.visits.append(self._visit_record(row))

        return [builder.build() for builder in builders.values()]

    @staticmethod
    def _visit_record(row: PatientVisitRow) -> VisitRecord:
        return VisitRecord(
            start=row.visit_start,
            end=row.visit_end,
            timezone=row.doctor_timezone,
            doctor=DoctorSummary(
                first_name=row.doctor_first_name,
                last_name=row.doctor_last_name,
                total_patients=row.doctor_patient_count or 0,
            ),
        )
