"""
Subset of FHIR R4 shapes exchanged with the backend.

Resources travel as plain dicts; these TypedDicts only document which keys
the converters read and write.
"""
from typing import List, TypedDict

ACT_CODE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v3-ActCode"
LOINC_SYSTEM = "http://loinc.org"
SNOMED_SYSTEM = "http://snomed.info/sct"
UCUM_SYSTEM = "http://unitsofmeasure.org"
CONDITION_CLINICAL_SYSTEM = "http://terminology.hl7.org/CodeSystem/condition-clinical"
CONDITION_VER_STATUS_SYSTEM = "http://terminology.hl7.org/CodeSystem/condition-ver-status"
ALLERGY_CLINICAL_SYSTEM = "http://terminology.hl7.org/CodeSystem/allergyintolerance-clinical"
ALLERGY_VERIFICATION_SYSTEM = "http://terminology.hl7.org/CodeSystem/allergyintolerance-verification"
IDENTIFIER_TYPE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v2-0203"
IDENTIFIER_OID_PREFIX = "urn:oid:2.16.840.1.113883.4.3."

# SNOMED CT 419199007 "Allergy to substance"
ALLERGY_SNOMED_CODE = "419199007"


# ----------------------------- datatypes -----------------------------
class Coding(TypedDict, total=False):
    system: str
    version: str
    code: str
    display: str
    userSelected: bool


class CodeableConcept(TypedDict, total=False):
    coding: List[Coding]
    text: str


class Period(TypedDict, total=False):
    start: str
    end: str


class Identifier(TypedDict, total=False):
    use: str
    type: CodeableConcept
    system: str
    value: str
    period: Period


class Reference(TypedDict, total=False):
    reference: str
    type: str
    identifier: Identifier
    display: str


class HumanName(TypedDict, total=False):
    use: str
    text: str
    family: str
    given: List[str]
    prefix: List[str]
    suffix: List[str]


class ContactPoint(TypedDict, total=False):
    system: str
    value: str
    use: str
    rank: int


class Address(TypedDict, total=False):
    use: str
    type: str
    text: str
    line: List[str]
    city: str
    district: str
    state: str
    postalCode: str
    country: str


class Annotation(TypedDict, total=False):
    authorString: str
    time: str
    text: str


class Quantity(TypedDict, total=False):
    value: float
    unit: str
    system: str
    code: str


class Dosage(TypedDict, total=False):
    text: str
    route: CodeableConcept


# ----------------------------- resources -----------------------------
class Patient(TypedDict, total=False):
    resourceType: str
    id: str
    identifier: List[Identifier]
    active: bool
    name: List[HumanName]
    telecom: List[ContactPoint]
    gender: str
    birthDate: str
    deceasedDateTime: str
    address: List[Address]
    generalPractitioner: List[Reference]
    managingOrganization: Reference
    # backend extensions, not in R4
    height: float
    weight: float


class Encounter(TypedDict, total=False):
    resourceType: str
    id: str
    status: str
    # "class" is a keyword, so the key is only reachable via dict access
    subject: Reference
    period: Period


class Observation(TypedDict, total=False):
    resourceType: str
    id: str
    status: str
    code: CodeableConcept
    subject: Reference
    encounter: Reference
    method: CodeableConcept
    valueQuantity: Quantity
    valueString: str
    note: List[Annotation]


class Condition(TypedDict, total=False):
    resourceType: str
    id: str
    clinicalStatus: CodeableConcept
    verificationStatus: CodeableConcept
    code: CodeableConcept
    subject: Reference
    encounter: Reference
    onsetDateTime: str
    recordedDate: str
    note: List[Annotation]


class MedicationRequest(TypedDict, total=False):
    resourceType: str
    id: str
    status: str
    intent: str
    medicationCodeableConcept: CodeableConcept
    subject: Reference
    encounter: Reference
    dosageInstruction: List[Dosage]


class Reaction(TypedDict, total=False):
    manifestation: List[CodeableConcept]
    severity: str


class AllergyIntolerance(TypedDict, total=False):
    resourceType: str
    id: str
    clinicalStatus: CodeableConcept
    verificationStatus: CodeableConcept
    type: str
    category: List[str]
    criticality: str
    code: CodeableConcept
    patient: Reference
    encounter: Reference
    reaction: List[Reaction]
