import asyncio

from google import genai
from loguru import logger

from introbot.core.config import settings


class GeminiService:
    def __init__(self, model: str = settings.DEFAULT_GEMINI_MODEL):
        self.model = model
        self.client = None
        if api_key := settings.GEMINI_API_KEY:
            try:
                self.client = genai.Client(api_key=api_key)
            except Exception as e:
                logger.warning(f"Failed to initialize Gemini client: {e}")
        else:
            logger.warning("GEMINI_API_KEY not set. AI intro summaries will use the local fallback.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @staticmethod
    def get_prompt():
        return """
        You write short member introductions for an AI community Discord server.
        Given a member's self-description, respond with a single JSON object and nothing else:

        {
          "summary": "2-3 sentence friendly third-person bio",
          "experienceLevel": "Beginner | Intermediate | Advanced | Expert",
          "skills": "comma separated list of at most 6 skills or tools"
        }

        Rules:
        - experienceLevel must be exactly one of Beginner, Intermediate, Advanced, Expert
        - Judge experience from role, institution and details; when unsure pick Beginner
        - Do not invent employers, degrees or achievements that are not in the input
        - Ignore fields marked "Not provided" or "Not specified"
        """

    def generate_content(self, prompt: str) -> str:
        system_prompt = self.get_prompt()
        if not self.client:
            return ""
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=system_prompt + "\n\n" + prompt,
            )
            return (response.text or "").strip()
        except Exception as e:
            logger.exception(f"Error generating content with Gemini: {e}")
            return ""

    async def generate_content_async(self, prompt: str) -> str:
        """Async wrapper to avoid blocking the event loop during network calls."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.generate_content(prompt))


gemini_service = GeminiService()
