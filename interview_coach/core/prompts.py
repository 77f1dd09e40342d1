from .models import QuestionGenerationRequest, QuestionParameters

INDUSTRY_PROFILES: dict[str, dict[str, object]] = {
    "technology": {
        "keywords": ["algorithm", "system design", "debugging", "scalability", "code review"],
        "focus": "technical problem-solving and system architecture",
    },
    "finance": {
        "keywords": ["risk management", "financial modeling", "compliance", "market analysis"],
        "focus": "analytical skills and regulatory knowledge",
    },
    "healthcare": {
        "keywords": ["patient care", "HIPAA", "clinical procedures", "medical ethics"],
        "focus": "patient interaction and medical knowledge",
    },
    "retail": {
        "keywords": ["customer service", "inventory", "sales", "complaint handling"],
        "focus": "customer interaction and sales techniques",
    },
    "education": {
        "keywords": ["curriculum", "classroom management", "student engagement", "assessment"],
        "focus": "teaching methods and student development",
    },
    "hospitality": {
        "keywords": ["guest satisfaction", "service recovery", "team coordination", "multitasking"],
        "focus": "customer service excellence and problem resolution",
    },
    "default": {
        "keywords": ["teamwork", "problem-solving", "communication", "leadership"],
        "focus": "general professional skills",
    },
}

# Offline question bank, used when the model is unavailable
QUESTION_TEMPLATES: dict[str, list[str]] = {
    "behavioral": [
        "Tell me about a time when you had to apply {keyword} under pressure.",
        "Describe a situation where {keyword} made the difference in a project.",
        "Give me an example of when you improved how your team handles {keyword}.",
        "How do you handle disagreements about {keyword} with a colleague?",
        "What would you do if a deadline forced a trade-off in {keyword}?",
    ],
    "technical": [
        "How would you approach {keyword} in a system you inherited?",
        "Explain the core ideas behind {keyword} to a new team member.",
        "What are the advantages and disadvantages of your usual approach to {keyword}?",
        "Walk me through a design decision you made involving {keyword}.",
    ],
    "situational": [
        "Imagine a critical issue with {keyword} surfaces an hour before launch. How would you respond?",
        "If two stakeholders disagreed about {keyword}, what steps would you take?",
        "How would you prioritize {keyword} against other urgent demands?",
    ],
    "cultural": [
        "What type of work environment helps you do your best work on {keyword}?",
        "How do you keep learning about {keyword} outside of day-to-day tasks?",
        "Describe the team dynamic you need to succeed with {keyword}.",
    ],
}

SYSTEM_INSTRUCTIONS = {
    "questions": (
        "You are an experienced hiring manager preparing candidates for interviews. "
        "You write realistic, specific interview questions and always answer with valid JSON only."
    ),
    "feedback": (
        "You are an interview coach giving honest, constructive feedback on practice answers. "
        "You always answer with valid JSON only."
    ),
}


def industry_profile(industry: str) -> dict[str, object]:
    return INDUSTRY_PROFILES.get(industry.lower(), INDUSTRY_PROFILES["default"])


def generate_questions_prompt(
    request: QuestionGenerationRequest, parameters: QuestionParameters, difficulty: float
) -> str:
    """Prompt for a batch of interview questions pitched at the candidate's level."""
    profile = industry_profile(request.industry)
    keywords = ", ".join(profile["keywords"])
    role_line = f"Role: {request.role}\n" if request.role else ""

    requirements = [f"- Target complexity: {parameters.complexity} (difficulty {difficulty:g} on a 1-10 scale)"]
    requirements.append(f"- Answerable in about {parameters.time_limit} seconds")
    if parameters.requires_examples:
        requirements.append("- Ask for concrete examples from the candidate's experience")
    if parameters.requires_analysis:
        requirements.append("- Require the candidate to analyse trade-offs or outcomes")
    requirements.append(f"- Provide {parameters.follow_up_count} follow-up question(s) per question")
    requirements_section = "\n".join(requirements)

    return f"""Generate {request.count} {request.question_type} interview question(s).

Industry: {request.industry}
{role_line}Experience level: {request.experience_level}
Focus: {profile["focus"]}
Relevant topics: {keywords}

Requirements:
{requirements_section}

Return as a JSON array:
[
  {{
    "text": "the question",
    "type": "{request.question_type}",
    "category": "short topic label",
    "difficulty": {difficulty:g},
    "expected_keywords": ["keyword", "..."],
    "follow_up_questions": ["..."],
    "time_to_answer": {parameters.time_limit}
  }}
]

Only return the JSON, nothing else."""


def analyze_answer_prompt(question_text: str, answer_text: str) -> str:
    """Prompt for scoring a practice answer."""
    return f"""Evaluate this practice interview answer.

Question: {question_text}

Answer: {answer_text}

Score the answer from 0 to 100 for relevance, structure (for example the STAR method), specificity and impact.

Return as JSON:
{{
  "overall_score": 0,
  "strengths": ["..."],
  "improvements": ["..."],
  "summary": "two or three sentences of coaching"
}}

Only return the JSON, nothing else."""
