"""Vertex AI Gemini client for Crossposter."""

import vertexai
from vertexai.generative_models import GenerationConfig, GenerativeModel

from crossposter.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARIZE_URL_PROMPT = """Summarize the article at the following URL in {language}, \
in three lines or fewer. Reply with the summary only.

{url}"""


class GeminiClient:
    """Client for generating article summaries using Vertex AI Gemini."""

    def __init__(
        self,
        project_id: str,
        region: str = "europe-west1",
        model_name: str = "gemini-2.0-flash-001",
    ) -> None:
        self._project_id = project_id
        self._region = region
        self._model_name = model_name
        self._initialized = False

    async def __aenter__(self) -> "GeminiClient":
        """Async context manager entry - initialize Vertex AI."""
        self._ensure_initialized()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        pass

    def _ensure_initialized(self) -> None:
        """Initialize Vertex AI if not already done."""
        if not self._initialized:
            vertexai.init(project=self._project_id, location=self._region)
            self._initialized = True
            logger.info("Vertex AI initialized", project=self._project_id, region=self._region)

    def _get_model(self) -> GenerativeModel:
        self._ensure_initialized()
        return GenerativeModel(self._model_name)

    async def summarize_url(self, url: str, language: str = "Japanese") -> str:
        """Generate a short summary of the article behind a URL.

        Args:
            url: The article URL.
            language: Language the summary is written in.

        Returns:
            The summary text, stripped.

        Raises:
            RuntimeError: If the model returns no content.
        """
        logger.info("Summarizing article", url=url)

        model = self._get_model()
        config = GenerationConfig(temperature=0.3, max_output_tokens=512)
        response = await model.generate_content_async(
            SUMMARIZE_URL_PROMPT.format(url=url, language=language),
            generation_config=config,
        )

        summary = (response.text or "").strip()
        if not summary:
            raise RuntimeError("Model returned empty response")
        logger.info("Article summarized", url=url, summary_length=len(summary))
        return summary
