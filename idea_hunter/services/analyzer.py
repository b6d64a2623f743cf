"""
Idea extraction service using an OpenAI-compatible chat completions API
Batches collected items, parses the JSON answer and maps ideas back to their items
"""
import json
import math
import re
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

from openai import APIConnectionError, OpenAI
from pydantic import ValidationError
from loguru import logger

from idea_hunter.config import AppConfig, Settings
from idea_hunter.models import BusinessIdea, CollectedItem
from idea_hunter.services.retry import RetryPolicy, attempt

PROMPT_CONTENT_LIMIT = 500
QUOTA_CODE = "insufficient_quota"

# Any info string (json, JSON, javascript...) up to the end of the opening fence line
_FENCE_RE = re.compile(r"```[^\n`]*\n([\s\S]*?)```")
_INLINE_FENCE_RE = re.compile(r"```(?:json)?\s*([^\n]*?)\s*```", re.IGNORECASE)

ANALYSIS_PROMPT = """あなたは新規事業のアイデアを発掘する専門家です。
SNSやメディアから集めた以下の投稿を読み、ビジネスアイデアの種になるものを抽出してください。

**入力が英語でも、出力は必ず日本語で書いてください。**

## 観点
1. **課題・不満**: 投稿者やユーザーが抱えている困りごと
2. **ニーズ**: 表明されている、または潜在的な「欲しい」
3. **市場機会**: 事業として成り立ちそうな余地
4. **実現可能性**: 技術面・ビジネス面で実現できそうか

## 出力形式
ビジネスアイデアとして価値がある投稿だけを、次の形式のJSON配列で出力してください。
価値がない投稿は含めないでください。

```json
[
  {
    "title": "アイデアのタイトル（20文字以内）",
    "category": "SaaS/EC/マーケットプレイス/コミュニティ/ツール/コンテンツ/その他 のいずれか",
    "painPoint": "見つけた課題・不満（100文字以内）",
    "idea": "ビジネスアイデアの概要（200文字以内）",
    "potential": "High/Medium/Low",
    "potentialReason": "判定理由（50文字以内）",
    "sourceIndex": 元データの Index 番号
  }
]
```

potential の基準:
- High: 課題が明確で共感者が多く、市場規模が見込める
- Medium: 課題は明確だが市場規模が不明、または競合が多い
- Low: ニッチすぎる、実現が難しい、または既に解決済み

## 分析対象データ
"""

JAPAN_FOCUS_NOTE = "\n\n注意: 日本市場でのビジネス機会を重視して分析してください。"


class AnalyzerState(Enum):
    ACTIVE = "active"
    QUOTA_EXHAUSTED = "quota_exhausted"


class IdeaParseError(ValueError):
    """Raised when a completion does not contain a JSON array of ideas"""
    pass


def _status_code(error: Exception) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def is_quota_error(error: Exception) -> bool:
    return getattr(error, "code", None) == QUOTA_CODE or getattr(error, "type", None) == QUOTA_CODE


def is_retryable_error(error: Exception) -> bool:
    """Rate limits without quota exhaustion, 5xx and connection/timeout errors"""
    if isinstance(error, APIConnectionError):
        return True

    status = _status_code(error)
    if status == 429:
        return not is_quota_error(error)
    return status is not None and status >= 500


def extract_payload(text: str) -> str:
    """Content of the first fenced code block, or the whole text"""
    match = _FENCE_RE.search(text) or _INLINE_FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def parse_ideas(text: str) -> List[BusinessIdea]:
    """
    Parse a completion into ideas

    Invalid individual entries are dropped; a payload that is not a
    JSON array raises IdeaParseError.
    """
    try:
        data = json.loads(extract_payload(text))
    except json.JSONDecodeError as e:
        raise IdeaParseError(f"Completion is not valid JSON: {e}")

    if not isinstance(data, list):
        raise IdeaParseError(f"Expected a JSON array, got {type(data).__name__}")

    ideas = []
    for entry in data:
        if not isinstance(entry, dict):
            logger.warning(f"[analyzer] Skipping non-object idea entry: {entry!r}")
            continue
        try:
            ideas.append(BusinessIdea.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"[analyzer] Skipping invalid idea: {e.errors()[0].get('msg')}")
    return ideas


def enrich(ideas: List[BusinessIdea], batch: List[CollectedItem], offset: int) -> List[BusinessIdea]:
    """Attach url/source/timestamp of the originating item, resolved within this batch"""
    enriched = []
    for idea in ideas:
        position = idea.source_index - offset if idea.source_index is not None else -1
        if 0 <= position < len(batch):
            original = batch[position]
            idea = idea.model_copy(update={
                "original_url": original.url,
                "original_source": original.source,
                "collected_at": original.collected_at,
            })
        else:
            logger.debug(f"[analyzer] sourceIndex {idea.source_index} outside batch at offset {offset}")
        enriched.append(idea)
    return enriched


def render_items(batch: List[CollectedItem], offset: int) -> str:
    records = []
    for position, item in enumerate(batch):
        records.append(
            f"\n---\n"
            f"Index: {offset + position}\n"
            f"Source: {item.source}\n"
            f"Title: {item.title}\n"
            f"Content: {item.content[:PROMPT_CONTENT_LIMIT]}\n"
            f"Engagement: {item.engagement}\n"
            f"URL: {item.url}\n"
        )
    return "".join(records)


class IdeaAnalyzerService:
    """Extracts business ideas from collected items, one LLM request per batch"""

    def __init__(
        self,
        config: AppConfig,
        settings: Optional[Settings] = None,
        client: Optional[OpenAI] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize analyzer service

        Args:
            config: Analysis configuration (model, batch size, market focus)
            settings: Application settings (if None, will load from environment)
            client: OpenAI client (if None, one is created from settings)
            retry_policy: Backoff policy for retryable errors
            sleep: Sleep function used between retries

        Raises:
            ConfigurationError: If no API key is configured
        """
        if settings is None:
            from idea_hunter.config import get_settings
            settings = get_settings()

        self.settings = settings
        self.analysis = config.analysis
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.state = AnalyzerState.ACTIVE

        if client is None:
            settings.require('OPENAI_API_KEY')
            logger.info(f"Initializing analyzer with model: {self.analysis.model}")
            # Retries are handled by our own policy
            client = OpenAI(
                base_url=settings.llm_base_url or None,
                api_key=settings.llm_api_key,
                timeout=settings.llm_timeout,
                max_retries=0,
            )
        self.client = client

    def analyze(self, items: List[CollectedItem]) -> List[BusinessIdea]:
        """
        Extract ideas from all items in batch order

        Args:
            items: Filtered, deduplicated items

        Returns:
            Ideas of every batch that succeeded, concatenated in batch order
        """
        if not items:
            return []

        batch_size = self.analysis.batch_size
        state = self.state
        ideas: List[BusinessIdea] = []

        for offset in range(0, len(items), batch_size):
            if state is AnalyzerState.QUOTA_EXHAUSTED:
                remaining = math.ceil((len(items) - offset) / batch_size)
                logger.warning(f"[analyzer] Skipping remaining {remaining} batches due to quota exhaustion")
                break

            batch = items[offset:offset + batch_size]
            try:
                batch_ideas, state = self._analyze_batch(batch, offset, state)
            except Exception as e:
                logger.exception(f"[analyzer] Unexpected error in batch at offset {offset}: {e}")
                batch_ideas = []
            ideas.extend(batch_ideas)

        self.state = state
        logger.info(f"[analyzer] {len(ideas)} ideas from {len(items)} items")
        return ideas

    def _build_prompt(self, batch: List[CollectedItem], offset: int) -> str:
        prompt = ANALYSIS_PROMPT + render_items(batch, offset)
        if self.analysis.japan_focus:
            prompt += JAPAN_FOCUS_NOTE
        return prompt

    def _complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.analysis.model,
            max_tokens=self.settings.llm_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _analyze_batch(
        self,
        batch: List[CollectedItem],
        offset: int,
        state: AnalyzerState,
    ) -> Tuple[List[BusinessIdea], AnalyzerState]:
        """
        Run one batch through the LLM

        Returns:
            (ideas, next state); state only moves to QUOTA_EXHAUSTED
        """
        label = f"analyzer batch@{offset}"
        prompt = self._build_prompt(batch, offset)
        logger.debug(f"[{label}] Prompt length: {len(prompt)} characters")

        result = attempt(
            lambda: self._complete(prompt),
            self.retry_policy,
            is_retryable=is_retryable_error,
            is_quota_error=is_quota_error,
            sleep=self.sleep,
            label=label,
        )

        if result.quota_exhausted:
            logger.error(
                f"[{label}] API quota exceeded, please check your billing. "
                f"Analysis will be skipped for remaining items."
            )
            return [], AnalyzerState.QUOTA_EXHAUSTED

        if result.retries_exhausted:
            logger.error(f"[{label}] Max retries ({self.retry_policy.max_attempts}) exceeded. Last error: {result.error}")
            return [], state

        if not result.ok:
            logger.error(f"[{label}] API error: {result.error}")
            return [], state

        if not result.value:
            logger.warning(f"[{label}] Empty completion")
            return [], state

        try:
            ideas = parse_ideas(result.value)
        except IdeaParseError as e:
            logger.error(f"[{label}] JSON parse error: {e}")
            return [], state

        return enrich(ideas, batch, offset), state
