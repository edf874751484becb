ANALYSIS_PROMPT_TEMPLATE = """
You are an expert technical recruiter and career coach. Analyze the following resume text.

CRITICAL INSTRUCTIONS:
1. Respond with ONLY a valid JSON object, no additional text, markdown, or formatting
2. Do not include any explanations, comments, or emojis
3. The JSON must have these exact keys and structure:
{{
  "summary": "concise professional summary in 2-3 sentences",
  "strengths": ["strength1", "strength2", "strength3", "strength4"],
  "areasForImprovement": ["improvement1", "improvement2", "improvement3"],
  "overallScore": 85
}}

Resume Text:
---
{resume_text}
---

IMPORTANT: Your response must be parseable as JSON with no additional processing.
"""


def build_analysis_prompt(resume_text: str, *, max_chars: int = 15000) -> str:
    return ANALYSIS_PROMPT_TEMPLATE.format(resume_text=resume_text[:max_chars])
