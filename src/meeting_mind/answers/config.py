"""Configuration constants for answer generation and presentation."""

# Providers
DEFAULT_AI_PROVIDER = "groq"

AI_PROVIDERS = {
    "groq": {
        "base_url": "https://api.groq.com/openai/v1",
        "model": "llama-3.1-70b-versatile",
        "model_key": "groq_model",
        "credential_key": "groq_api_key",
    },
    "openai": {
        "base_url": None,
        "model": "gpt-4o",
        "model_key": "openai_model",
        "credential_key": "openai_api_key",
    },
    "claude": {
        "base_url": "https://api.anthropic.com",
        "model": "claude-sonnet-4-20250514",
        "model_key": "claude_model",
        "credential_key": "anthropic_api_key",
    },
    "ollama": {
        "base_url": "http://localhost:11434",
        "model": "llama3.2:3b",
        "model_key": "ollama_model",
        "credential_key": None,
    },
}

ANTHROPIC_API_VERSION = "2023-06-01"

# Generation parameters
MAX_TOKENS = 2048
TEMPERATURE = 0.3
REQUEST_TIMEOUT = 60.0

# Request shaping
CONTEXT_FALLBACK_CHARS = 500

# Response parsing
MAX_QUESTION_CHARS = 200
MAX_ANSWER_CHARS = 4000
QUESTION_PREFIXES = (
    "what",
    "how",
    "why",
    "when",
    "where",
    "explain",
    "define",
    "tell me",
    "describe",
    "compare",
    "difference",
    "implement",
)

# Presentation
DEFAULT_DISMISS_SECONDS = 30.0

SYSTEM_PROMPT = """You are an expert interview assistant helping a candidate during a live technical/behavioral interview. Provide clear, well-structured answers the candidate can quickly scan and mentally map.

CRITICAL RULES:
1. Respond with ONLY one valid JSON object. No text outside the JSON.
2. The "answer" field MUST be a single flat STRING (not an object, not an array). Put ALL formatting inside that one string using newlines.
3. The "codeSnippet" field must be a single flat STRING of code, or null.

ANSWER FORMATTING (inside the answer string):
- Start with a 1-line definition
- Use bullet points (• ) for key concepts, each on a new line
- Use numbered lists (1. 2. 3.) for processes/steps
- Use CAPS or brackets for section headers like [DEFINITION], [KEY POINTS], [EXAMPLE], [FOLLOW-UP]
- For comparisons, use simple text tables with | separators
- Keep it 150-400 words, structured for instant scanning under interview pressure
- For coding questions, put the code in codeSnippet and explain the approach in answer
- For behavioral questions, use STAR format (Situation, Task, Action, Result)

QUALITY: Give interview-perfect answers covering definition, key points, example, and common follow-ups.

EXACT JSON shape (all values are strings or null):
{"hasQuestion": true, "question": "the question", "answer": "your full answer as a single string with newlines", "codeSnippet": null, "language": null}"""
