"""
Mock LLM
离线模式下的确定性 LLM: 按提示词中的 JSON 结构识别任务, 由输入内容生成稳定的回复
"""
from typing import Any, Dict, List
import json
import re

from intelligence.pipeline_helpers import split_sentences, truncate_text

from .base import BaseLLM, Message, LLMResponse, MessageRole


_ARTICLE_RE = re.compile(r"<article>\n?(.*?)\n?</article>", re.DOTALL)
_TITLE_RE = re.compile(r"^(?:Article title|Title):\s*(.+)$", re.MULTILINE)
_COUNT_RE = re.compile(r"exactly (\d+) key points")
_REQUEST_RE = re.compile(r"^Request:\s*(.*)$", re.MULTILINE)
_SUMMARY_RE = re.compile(r"^(?:Analysis|Summary):\s*(.*)$", re.MULTILINE)

_NARRATION_CLOSERS = [
    "Observers will be watching closely to see how the main parties respond in the coming weeks.",
    "For now, the key question is whether the early signals hold up once more data becomes available.",
    "Much depends on funding, timing and the willingness of the people involved to keep working together.",
    "We will continue to follow the story and bring you updates as new details are confirmed.",
    "That is the state of play today, and the next chapter may arrive sooner than many expect.",
]


class MockLLM(BaseLLM):
    """确定性离线 LLM, 不访问网络"""

    MIN_NARRATION_CHARS = 900

    def __init__(self, model: str = "mock-llm", **kwargs):
        super().__init__(model, **kwargs)
        self.calls: List[str] = []

    @property
    def provider(self) -> str:
        return "mock"

    def complete(self, messages: List[Message], **kwargs) -> LLMResponse:
        prompt = "\n".join(m.content for m in messages if m.role == MessageRole.USER)
        self.calls.append(prompt)
        content = self._respond(prompt)
        return LLMResponse(content=content, model=self.model, finish_reason="stop")

    def _respond(self, prompt: str) -> str:
        if "=== PREVIOUS ANALYSIS ===" in prompt:
            return self._json(self._revised(prompt))
        if "[LEARNED STYLE PATTERNS]" in prompt:
            return self._json(self._styled(prompt))
        if '"formality"' in prompt:
            return self._json(self._style_patterns())
        if '"is_clear"' in prompt:
            return self._json({"is_clear": True, "reason": "[Mock] The analysis has a clear focus.", "suggested_question": ""})
        if '"is_specific"' in prompt:
            return self._json(self._interpret_check(prompt))
        if '"analysis_direction"' in prompt:
            return self._json(self._interpretation(prompt))
        if '"key_points"' in prompt:
            return self._json(self._analysis(prompt))
        if '"is_valid"' in prompt:
            return self._json({"is_valid": True, "reason": "[Mock] The page contains article content.", "confidence": 0.9})
        return "[Mock] Analysis complete."

    @staticmethod
    def _json(payload: Dict[str, Any]) -> str:
        return json.dumps(payload, ensure_ascii=False)

    @staticmethod
    def _title(prompt: str) -> str:
        match = _TITLE_RE.search(prompt)
        return match.group(1).strip() if match else "the story"

    @staticmethod
    def _article(prompt: str) -> str:
        match = _ARTICLE_RE.search(prompt)
        return match.group(1).strip() if match else ""

    def _analysis(self, prompt: str) -> Dict[str, Any]:
        title = self._title(prompt)
        sentences = split_sentences(self._article(prompt))
        match = _COUNT_RE.search(prompt)
        count = int(match.group(1)) if match else 4

        key_points = [truncate_text(s, 160) for s in sentences[:count]]
        while len(key_points) < count:
            key_points.append(f"[Mock] Point {len(key_points) + 1} about {title}.")

        lead = " ".join(sentences[:2]) or f"The article reports on {title}."
        summary = f"[Mock] {title}: {lead}"

        payload = {
            "news_title": f"[Mock] {title}",
            "translated_summary": truncate_text(summary, 600),
            "content_summary": truncate_text(" ".join(sentences[:4]) or summary, 800),
            "key_points": key_points,
            "critical_analysis": {
                "why_important": f"[Mock] {title} affects policy, markets and the people involved.",
                "future_prediction": "[Mock] Further announcements are likely within the next few months.",
            },
        }
        if '"narration"' in prompt:
            payload["narration"] = self._narration(title, sentences)
        return payload

    def _narration(self, title: str, sentences: List[str]) -> str:
        parts = [f"Here is our report on {title}."]
        parts.extend(sentences[:8])
        index = 0
        while len(" ".join(parts)) < self.MIN_NARRATION_CHARS:
            parts.append(_NARRATION_CLOSERS[index % len(_NARRATION_CLOSERS)])
            index += 1
        return " ".join(parts)

    @staticmethod
    def _revised(prompt: str) -> Dict[str, Any]:
        previous_block = prompt.split("=== PREVIOUS ANALYSIS ===", 1)[1].split("=== END PREVIOUS ANALYSIS ===", 1)[0]
        try:
            previous = json.loads(previous_block)
        except json.JSONDecodeError:
            previous = {}
        revised = dict(previous) if isinstance(previous, dict) else {}
        revised["news_title"] = f"[Revised] {revised.get('news_title') or 'Analysis'}"
        narration = revised.get("narration") or ""
        revised["narration"] = (narration + " This version reflects the editor's feedback.").strip()
        return revised

    def _interpret_check(self, prompt: str) -> Dict[str, Any]:
        match = _REQUEST_RE.search(prompt)
        target = match.group(1).strip() if match else ""
        specific = len(target.split()) >= 2
        return {
            "is_specific": specific,
            "reason": "[Mock] Request length heuristic.",
            "clarification_question": "" if specific else "Which aspect of the story should the interpretation focus on?",
        }

    def _interpretation(self, prompt: str) -> Dict[str, Any]:
        match = _REQUEST_RE.search(prompt)
        target = truncate_text(match.group(1).strip(), 200) if match else ""
        return {
            "main_topic": f"[Mock] {self._title(prompt)}",
            "sub_topics": ["[Mock] policy", "[Mock] economy"],
            "analysis_direction": f"[Mock] Follow the consequences of: {target}",
            "key_questions": ["[Mock] Who is affected first?", "[Mock] What changes next?"],
            "confidence": 0.8,
        }

    @staticmethod
    def _style_patterns() -> Dict[str, Any]:
        return {
            "style": {"formality": "formal", "tone": "analytical", "detail_level": "detailed"},
            "structure": {
                "intro_style": "[Mock] Lead with the key conclusion",
                "body_style": "[Mock] Support with data and examples",
                "conclusion_style": "[Mock] Close with an outlook",
                "paragraph_length": "medium",
            },
            "common_patterns": ["[Mock] Conclusion first", "[Mock] Evidence from data"],
            "emphasis_methods": ["[Mock] Short emphatic sentences"],
            "transition_phrases": ["[Mock] What matters here is..."],
            "unique_expressions": ["[Mock] The bottom line is..."],
            "target_audience": "[Mock] General readers",
            "vocabulary_level": "intermediate",
        }

    @staticmethod
    def _styled(prompt: str) -> Dict[str, Any]:
        match = _SUMMARY_RE.search(prompt)
        summary = match.group(1).strip() if match else ""
        points = re.findall(r"^- (.+)$", prompt.split("Key points:", 1)[-1], re.MULTILINE)
        return {
            "translated_summary": f"The bottom line is this. {summary}",
            "key_points": points,
            "critical_analysis": {
                "why_important": "[Mock] What matters here is the wider impact.",
                "future_prediction": "[Mock] Expect the next step soon.",
            },
        }
