from .config import KnowledgeBase
from .schemas import PatientProfile, VitalsProfile

ANONYMOUS = "Anonymous"
NO_SYMPTOMS = "None specified"

STRUCTURED_PROMPT_TEMPLATE = """
You are a senior Clinical Advisor.
Analyze the patient's condition strictly using the provided guidelines and physician directory.

### CLINICAL GUIDELINES (SOURCE OF TRUTH):
{guidelines}

### PHYSICIAN DIRECTORY:
{directory}

### PATIENT CONTEXT:
- Name: {name}
- Age: {age} years
- Gender: {gender}
- Weight: {weight} kg
- Height: {height} cm
- Blood Group: {blood_group}
- Symptoms: {symptoms}

### OUTPUT REQUIREMENTS:
1. Summarize clinical impression.
2. Identify list of probable conditions based on the guidelines.
3. For each condition, assign a likelihood (HIGH, MODERATE, or LOW) and explain why based on the text.
4. Provide specific recommended actions.
5. Select the SINGLE MOST APPROPRIATE doctor from the physician directory for this patient.
6. Determine triage status (NORMAL, MONITOR, URGENT, or EMERGENCY).

RETURN ONLY A VALID JSON OBJECT.
"""

NARRATIVE_PROMPT_TEMPLATE = """
You are a senior Clinical Advisor.
Write a clinical assessment report for the patient below, strictly using the provided guidelines.

### CLINICAL GUIDELINES (SOURCE OF TRUTH):
{guidelines}

### PATIENT CONTEXT:
- Name: {name}
- Age: {age} years
- Gender: {gender}
- Weight: {weight} kg
- Height: {height} cm
- Blood Group: {blood_group}

### VITALS:
- Heart Rate: {heart_rate} bpm
- Blood Pressure: {systolic}/{diastolic} mmHg
- Temperature: {temperature} °C
- SpO2: {spo2} %

### SYMPTOMS:
{symptoms}

### OUTPUT REQUIREMENTS:
Answer in Markdown. Use "## " headings for these sections, in order:
Clinical Impression, Vitals Review, Probable Conditions, Recommended Actions, Triage Status.
Use "- " bullet lines for lists and **bold** for key findings.
Flag any abnormal vital sign explicitly.
"""


def _demographics(profile: PatientProfile) -> dict:
    return {
        "name": profile.full_name or ANONYMOUS,
        "age": profile.age,
        "gender": profile.gender,
        "weight": profile.weight,
        "height": profile.height,
        "blood_group": profile.blood_group,
    }


def build_structured_prompt(knowledge: KnowledgeBase, profile: PatientProfile, symptoms: str) -> str:
    """Fill the JSON-report template. Values are inserted verbatim."""
    return STRUCTURED_PROMPT_TEMPLATE.format(
        guidelines=knowledge.guidelines,
        directory=knowledge.physician_directory,
        symptoms=symptoms or NO_SYMPTOMS,
        **_demographics(profile),
    )


def build_narrative_prompt(knowledge: KnowledgeBase, profile: VitalsProfile, symptoms: str) -> str:
    """Fill the Markdown-report template. Values are inserted verbatim."""
    return NARRATIVE_PROMPT_TEMPLATE.format(
        guidelines=knowledge.guidelines,
        heart_rate=profile.heart_rate,
        systolic=profile.systolic,
        diastolic=profile.diastolic,
        temperature=profile.temperature,
        spo2=profile.spo2,
        symptoms=symptoms or NO_SYMPTOMS,
        **_demographics(profile),
    )
