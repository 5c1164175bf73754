"""Report models shared by every stage of the extraction pipeline."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ========================================
# Status & Issues
# ========================================


class ParameterStatus(str, Enum):
    """Clinical severity assigned to a parameter."""

    NORMAL = "NORMAL"  # inside the reference interval
    WATCH = "WATCH"  # outside, but within the tolerance margin
    ATTENTION = "ATTENTION"  # clearly outside
    UNDEFINED = "UNDEFINED"  # cannot be determined


class IssueKind(str, Enum):
    """Failure and recovery taxonomy reported by the engine."""

    EMPTY_INPUT = "EMPTY_INPUT"
    NO_CATEGORIES_DETECTED = "NO_CATEGORIES_DETECTED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    UNPARSEABLE_NUMERIC_VALUE = "UNPARSEABLE_NUMERIC_VALUE"
    UNPARSEABLE_REFERENCE_RANGE = "UNPARSEABLE_REFERENCE_RANGE"


# ========================================
# Reference Ranges
# ========================================


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class NumericRange(_FrozenModel):
    """Closed interval ``min - max``."""

    kind: Literal["range"] = "range"
    min: float
    max: float


class UpperBound(_FrozenModel):
    """Reference written as ``< max``."""

    kind: Literal["upper_bound"] = "upper_bound"
    max: float


class LowerBound(_FrozenModel):
    """Reference written as ``> min``."""

    kind: Literal["lower_bound"] = "lower_bound"
    min: float


class QualitativeExpected(_FrozenModel):
    """Reference that names the expected result, e.g. ``Negativo``."""

    kind: Literal["qualitative"] = "qualitative"
    token: str


class Unparseable(_FrozenModel):
    kind: Literal["unparseable"] = "unparseable"


ReferenceRange = Annotated[
    NumericRange | UpperBound | LowerBound | QualitativeExpected | Unparseable,
    Field(discriminator="kind"),
]


# ========================================
# Parameters & Categories
# ========================================


class ExtractedParameter(_FrozenModel):
    """Single lab parameter as found in the document."""

    name: str = Field(description="Canonical marker name or the label captured from the line")
    value: str = Field(description="Result exactly as written, e.g. '13,5', 'Negativo'")
    numeric_value: float | None = Field(
        default=None,
        description="Decimal value, only when `value` parses entirely as a number after comma->dot",
    )
    unit: str = ""
    reference_range: str = Field(default="", description="Reference text exactly as written")
    reference: ReferenceRange = Field(default_factory=Unparseable)
    status: ParameterStatus = ParameterStatus.UNDEFINED


class ExamCategory(_FrozenModel):
    """Group of related parameters (Hematology, Lipid panel, ...)."""

    name: str
    parameters: tuple[ExtractedParameter, ...] = ()

    def get(self, name: str) -> ExtractedParameter | None:
        """Return the parameter called ``name``, if present."""

        return next((p for p in self.parameters if p.name == name), None)

    def overall_status(self) -> ParameterStatus:
        """Worst status among the parameters (UNDEFINED when mixed or empty)."""

        # Guard: Nothing to summarize
        if not self.parameters:
            return ParameterStatus.UNDEFINED

        statuses = {p.status for p in self.parameters}
        if ParameterStatus.ATTENTION in statuses:
            return ParameterStatus.ATTENTION
        if ParameterStatus.WATCH in statuses:
            return ParameterStatus.WATCH
        if statuses == {ParameterStatus.NORMAL}:
            return ParameterStatus.NORMAL
        return ParameterStatus.UNDEFINED

    def status_counts(self) -> dict[ParameterStatus, int]:
        """Number of parameters per status."""

        counts: dict[ParameterStatus, int] = {}
        for parameter in self.parameters:
            counts[parameter.status] = counts.get(parameter.status, 0) + 1
        return counts


# ========================================
# Report
# ========================================


class PatientInfo(_FrozenModel):
    """Document-level metadata found through simple ``Label: value`` lines."""

    name: str = ""
    patient_id: str = ""
    age: str = ""
    gender: str = ""
    doctor: str = ""
    exam_date: str = ""
    report_date: str = ""
    sample_date: str = ""


class MedicalReport(_FrozenModel):
    """Final report: non-empty categories in discovery order."""

    categories: tuple[ExamCategory, ...]
    patient: PatientInfo = Field(default_factory=PatientInfo)
    collection_date: str | None = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Specimen collection date in YYYY-MM-DD format",
    )

    def category(self, name: str) -> ExamCategory | None:
        """Return the category called ``name``, if present."""

        return next((c for c in self.categories if c.name == name), None)

    @computed_field
    @property
    def parameter_count(self) -> int:
        return sum(len(c.parameters) for c in self.categories)


class ExtractionNotice(_FrozenModel):
    """Recovered problem attached to a successful extraction."""

    kind: IssueKind
    category: str = ""
    parameter: str = ""
    detail: str = ""


class ExtractionFailure(_FrozenModel):
    """Terminal outcome when no report can be produced."""

    reason: IssueKind
    message: str


class ExtractionResult(_FrozenModel):
    """Either a report or a failure, plus the notices gathered on the way."""

    report: MedicalReport | None = None
    failure: ExtractionFailure | None = None
    notices: tuple[ExtractionNotice, ...] = ()

    @property
    def ok(self) -> bool:
        return self.report is not None
