"""
Prompt Templates
各阶段使用的提示词模板; JSON 结构说明与解析模型一一对应
"""

VALIDATION_SYSTEM = "You are a news desk editor. You decide whether a fetched web page is a genuine news or feature article."

VALIDATION_PROMPT = """Check whether the page below is a real article worth analysing (not a login wall, index page or error page).

Title: {title}
<article>
{excerpt}
</article>

Respond with JSON only:
{{"is_valid": true, "reason": "short explanation", "confidence": 0.0}}"""


ANALYSIS_SYSTEM = (
    "You are a senior foreign-news editor. You read overseas articles and brief "
    "{language} readers: translate the gist faithfully, pick out what matters and "
    "explain why it matters. Never invent facts that are not in the article."
)

ANALYSIS_PROMPT = """Analyse the following article.

Title: {title}
Source: {source}
Author: {author}
<article>
{content}
</article>

Instructions:
1. Write a new headline and a summary translated into {language}.
2. Extract exactly {key_points_count} key points.
3. Explain why the story matters and what is likely to happen next.
{narration_instruction}
Respond with JSON only:
{{
  "news_title": "headline",
  "translated_summary": "summary in {language}",
  "content_summary": "one-paragraph overview",
  "key_points": ["point 1", "point 2"],
{narration_field}  "critical_analysis": {{"why_important": "...", "future_prediction": "..."}}
}}"""

NARRATION_INSTRUCTION = "4. Write a narration script for a news broadcast of at least 900 characters.\n"
NARRATION_FIELD = '  "narration": "broadcast script",\n'


INTERPRET_CHECK_PROMPT = """Decide whether the reader request below is specific enough to interpret the article.

Request: {target}

Respond with JSON only:
{{"is_specific": true, "reason": "short explanation", "clarification_question": "question to ask if not specific"}}"""

INTERPRET_PROMPT = """Interpret the request below and propose a direction for deeper analysis.

Request: {target}
Article title: {title}
Related knowledge:
{knowledge}

Respond with JSON only:
{{"main_topic": "...", "sub_topics": ["..."], "analysis_direction": "...", "key_questions": ["..."], "confidence": 0.0}}"""


STYLE_LEARN_PROMPT = """Analyse the writing samples below and extract the author's writing patterns.

{samples}

Respond with JSON only:
{{
  "style": {{"formality": "formal/informal/mixed", "tone": "objective/analytical/conversational", "detail_level": "concise/moderate/detailed"}},
  "structure": {{"intro_style": "...", "body_style": "...", "conclusion_style": "...", "paragraph_length": "short/medium/long"}},
  "common_patterns": ["..."],
  "emphasis_methods": ["..."],
  "transition_phrases": ["..."],
  "unique_expressions": ["..."],
  "target_audience": "...",
  "vocabulary_level": "beginner/intermediate/advanced"
}}"""

STYLE_CLARITY_PROMPT = """Decide whether the direction of this analysis is clear.

Analysis: {summary}

Respond with JSON only:
{{"is_clear": true, "reason": "short explanation", "suggested_question": "question to ask if unclear"}}"""

STYLE_APPLY_PROMPT = """Rewrite the analysis below using the LEARNED STYLE PATTERNS. Keep every fact; change only tone, structure and expressions.

[LEARNED STYLE PATTERNS]
{patterns}

[ANALYSIS]
Summary: {summary}
Key points:
{key_points}
Why it matters: {why_important}
Outlook: {future_prediction}

Respond with JSON only:
{{"translated_summary": "...", "key_points": ["..."], "critical_analysis": {{"why_important": "...", "future_prediction": "..."}}}}"""


IMAGE_PROMPT = (
    "Create a high-quality editorial illustration for an international news article. "
    "Style: flat vector art, clean minimalist design, bold colors on a dark background, "
    "no text, no letters, no realistic human faces. "
    "Theme: {theme}. Mood/topic inspired by: {text}"
)


REVISE_PROMPT = """You previously wrote the analysis below. An editor reviewed it and left feedback.

=== PREVIOUS ANALYSIS ===
{previous}
=== END PREVIOUS ANALYSIS ===

=== EDITOR FEEDBACK ===
{feedback}
{score_line}=== END EDITOR FEEDBACK ===

Fix what the feedback points out and return an improved analysis. Respond with JSON only:
{{
  "news_title": "headline",
  "translated_summary": "summary",
  "content_summary": "overview",
  "key_points": ["point 1", "point 2", "point 3", "point 4"],
  "narration": "broadcast script of at least 900 characters",
  "critical_analysis": {{"why_important": "...", "future_prediction": "..."}}
}}"""
