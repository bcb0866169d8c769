"""
OpenAI Service
Optional completion calls that rewrite recommendation explanations.
Every caller keeps its rule-based text when the client is missing or a call fails.
"""
import json
import logging
from typing import Optional

from ..config import OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL

logger = logging.getLogger(__name__)

# Lazy-loaded OpenAI client
_client = None


def get_openai_client():
    """Get or create OpenAI client (lazy initialization)."""
    global _client
    if _client is None:
        from openai import OpenAI

        _client = OpenAI(api_key=OPENAI_API_KEY, base_url=OPENAI_BASE_URL or None)
    return _client


class OpenAIService:
    """Explanation rewrites and JSON product picks"""

    def __init__(self):
        self.api_key = OPENAI_API_KEY
        self.model = OPENAI_MODEL

    def is_available(self) -> bool:
        return bool(self.api_key)

    def enhance_explanation(
        self,
        system_prompt: str,
        responses: dict,
        title: str,
        reason: str,
        max_tokens: int = 300,
        extra_instructions: str = (
            "Please enhance this explanation to be more personalized and informative, "
            "including why this is a good match for their specific situation. Keep it "
            "under 3 paragraphs and maintain a professional, supportive tone."
        ),
    ) -> str:
        """Return a rewritten explanation, or ``reason`` unchanged on any failure"""
        if not self.is_available():
            return reason

        prompt = (
            f"Based on the following user responses: {json.dumps(responses)}, "
            f"we have recommended: {title}. The basic reason is: {reason}. "
            f"{extra_instructions}"
        )

        try:
            response = get_openai_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
            if content and content.strip():
                return content.strip()
            return reason
        except Exception as e:
            logger.error(f"❌ OpenAI API error: {e}")
            return reason

    def recommend_json(
        self, system_prompt: str, user_prompt: str, max_tokens: int = 150, temperature: float = 0.5
    ) -> Optional[dict]:
        """Ask for a JSON object answer; None when unavailable or unparsable"""
        if not self.is_available():
            return None

        try:
            response = get_openai_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content or ""
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"❌ OpenAI returned invalid JSON: {e}")
            return None
        except Exception as e:
            logger.error(f"❌ OpenAI API error: {e}")
            return None


# Global instance
openai_service = OpenAIService()
