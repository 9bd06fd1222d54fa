"""
Relevance scoring module using an LLM.

This module asks a chat model to score every regulation against a user query
in a single request, then repairs the returned score array:
1. Missing trailing scores are padded with 0, extra scores are ignored
2. Non-numeric / NaN scores become 0, everything else is clamped to [0, 1]
3. Records at or below the relevance threshold are dropped
4. The rest is sorted by relevance (stable, descending)

If nothing survives the threshold the deterministic fallback matcher is used.
"""

import json
import logging
import math
import os
import time
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from dotenv import load_dotenv
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from regulation_search.config.config import MAX_MIN_RELEVANCE, MAX_TEMPERATURE
from regulation_search.errors import OracleError, TransportError
from regulation_search.models import Regulation
from regulation_search.search.fallback import fallback_with_stage
from regulation_search.security import sanitize_query

if TYPE_CHECKING:
    from regulation_search.config import Config
    from regulation_search.metrics import SearchMetrics

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MIN_RELEVANCE = 0.01
DEFAULT_TEMPERATURE = 0.0
DEFAULT_MAX_TOKENS = 2000
DEFAULT_MAX_QUERY_LENGTH = 500

SUPPORTED_PROVIDERS = ('openai', 'ollama', 'custom')


# Scoring instructions (Japanese, matches the regulation data)
DEFAULT_SYSTEM_PROMPT = """あなたは条例データベースの検索エキスパートです。
与えられた条例データの中から、ユーザーの質問に関連する条例を見つけ、各条例に関連度スコアを付けてください。

必ず守ること:
1. すべての条例にスコアを付けること
2. スコアは0以上1以下の数値であること
3. スコア配列の長さは入力された条例の件数（{count}件）と完全に一致すること

スコアリング基準:
1. 地域名:
- 質問に地域名が含まれる場合、その地域の条例には0.1以上のスコアを付ける
- 完全一致（例：京都府→京都府）: 0.8-1.0
- 部分一致（例：京都→京都府/京都市）: 0.6-0.8
- その他の地域: 0.0

2. 内容（地域名が一致した場合に加算）:
- 質問のキーワードが条例の内容と一致: +0.2
- 関連するカテゴリーと一致: +0.1
- 質問の意図と条例の目的が一致: +0.1

回答は次の構造のJSONオブジェクトのみとすること:
{{"scores": [0.0, 0.0, ...]}}

配列の長さは必ず{count}であること。コメントは含めないこと。"""

DEFAULT_USER_PROMPT = """以下の質問に対して、条例データの関連度をJSON形式で返してください。

質問: {query}

条例データ（{count}件）: {records}"""


def normalize_score(value: Any) -> float:
    """
    Coerce one raw score to a float in [0, 1].

    Non-numeric values (including bool and numeric strings) and NaN become 0.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def reconcile_scores(raw_scores: Sequence[Any], count: int) -> List[float]:
    """
    Repair a score array to exactly `count` normalized entries.

    Args:
        raw_scores: Scores as returned by the model
        count: Number of records that were scored

    Returns:
        List of `count` floats in [0, 1]; missing entries are 0, extras are ignored
    """
    if len(raw_scores) != count:
        logger.warning(
            f"Score count ({len(raw_scores)}) does not match regulation count ({count}); "
            f"padding missing entries with 0"
        )
    return [normalize_score(raw_scores[i]) if i < len(raw_scores) else 0.0 for i in range(count)]


def parse_scores(content: Any) -> List[Any]:
    """
    Extract the raw `scores` array from the model reply.

    Args:
        content: Reply text

    Returns:
        The raw scores list (not yet normalized)

    Raises:
        OracleError: 'empty response' if there is no body, 'malformed' otherwise
    """
    if content is None or (isinstance(content, str) and not content.strip()):
        raise OracleError("empty response")
    if not isinstance(content, str):
        raise OracleError("malformed")

    text = content.strip()
    # Remove markdown formatting if present
    if text.startswith('```'):
        lines = text.split('\n')
        text = '\n'.join([l for l in lines if not l.strip().startswith('```')]).strip()

    try:
        payload = json.loads(text)
    except ValueError as e:
        raise OracleError("malformed") from e

    if not isinstance(payload, dict) or 'scores' not in payload:
        raise OracleError("malformed")
    scores = payload['scores']
    if not isinstance(scores, list):
        raise OracleError("malformed")
    return scores


def rank_by_relevance(scored: Sequence[Regulation], min_relevance: float) -> List[Regulation]:
    """Drop records at or below the threshold; sort the rest by relevance, descending."""
    kept = [reg for reg in scored if reg.relevance is not None and reg.relevance > min_relevance]
    return sorted(kept, key=lambda reg: reg.relevance, reverse=True)


class RelevanceScorer:
    """
    Scores regulations against a query with a chat model.

    The model is treated as an opaque oracle: one request per search, JSON in,
    JSON out. All repair, filtering and ordering happens locally.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        min_relevance: Optional[float] = None,
        max_query_length: Optional[int] = None,
        llm: Optional[Any] = None,
        config: Optional['Config'] = None
    ):
        """
        Initialize the scorer.

        Args:
            provider: LLM provider - 'openai', 'ollama' or 'custom' (overrides config)
            model: Model name (overrides config)
            temperature: Sampling temperature (overrides config, default 0)
            max_tokens: Output token cap (overrides config, default 2000)
            api_key: API key for the provider (defaults to OPENAI_API_KEY)
            base_url: Custom base URL for API (overrides config)
            min_relevance: Keep records strictly above this score (overrides config)
            max_query_length: Longest query sent to the model (overrides config)
            llm: Pre-built chat model or runnable (skips provider setup)
            config: Optional Config instance

        Raises:
            ValueError: If the provider is unknown, a credential is missing
                or min_relevance/temperature is out of range
        """
        scorer_config = {}
        search_config = {}
        if config:
            scorer_config = config.llm.get('scorer', {}) or {}
            search_config = config.search

        self.provider = provider or scorer_config.get('provider', 'openai')
        self.model = model or scorer_config.get('model', 'gpt-3.5-turbo')
        self.temperature = temperature if temperature is not None else scorer_config.get('temperature', DEFAULT_TEMPERATURE)
        self.max_tokens = max_tokens if max_tokens is not None else scorer_config.get('max_tokens', DEFAULT_MAX_TOKENS)
        base_url = base_url or scorer_config.get('base_url')
        self.min_relevance = min_relevance if min_relevance is not None else search_config.get('min_relevance', DEFAULT_MIN_RELEVANCE)
        self.max_query_length = max_query_length or search_config.get('max_query_length', DEFAULT_MAX_QUERY_LENGTH)

        self._validate_settings()

        if llm is None:
            llm = self._initialize_llm(self.provider, api_key, self.model, base_url)
        self.llm = llm

        logger.info(
            f"Initialized RelevanceScorer with {self.provider} (model={self.model}, "
            f"temperature={self.temperature}, min_relevance={self.min_relevance})"
        )

    def _validate_settings(self) -> None:
        """Range-check settings that may come from arguments rather than config."""
        threshold = self.min_relevance
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) \
                or not (0 < threshold <= MAX_MIN_RELEVANCE):
            raise ValueError(f"min_relevance must be a float in (0, {MAX_MIN_RELEVANCE}], got {threshold}")

        temperature = self.temperature
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) \
                or not (0 <= temperature <= MAX_TEMPERATURE):
            raise ValueError(f"temperature must be a number between 0 and {MAX_TEMPERATURE}, got {temperature}")

    def _initialize_llm(
        self,
        provider: str,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str]
    ) -> Any:
        """Initialize the chat model in JSON-object output mode."""
        if provider == 'openai':
            if api_key is None:
                api_key = os.getenv("OPENAI_API_KEY")
            if api_key is None:
                raise ValueError(
                    "OpenAI API key required. Set OPENAI_API_KEY env var or pass api_key parameter."
                )
            llm = ChatOpenAI(
                model=model,
                api_key=api_key,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                base_url=base_url
            )
            return llm.bind(response_format={"type": "json_object"})

        elif provider == 'custom':
            # OpenAI-compatible API (proxies, local servers)
            if api_key is None:
                api_key = os.getenv("OPENAI_API_KEY", "dummy-key")
            if base_url is None:
                raise ValueError("base_url required for custom provider")
            logger.info(f"Using custom API at {base_url} with model: {model}")
            llm = ChatOpenAI(
                model=model,
                api_key=api_key,
                base_url=base_url,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
            return llm.bind(response_format={"type": "json_object"})

        elif provider == 'ollama':
            from langchain_ollama import ChatOllama

            logger.info(f"Using Ollama with model: {model}")
            return ChatOllama(
                model=model,
                temperature=self.temperature,
                num_predict=self.max_tokens,
                format="json",
                base_url=base_url or 'http://localhost:11434'
            )

        raise ValueError(
            f"Unknown provider: {provider}. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    def build_messages(self, query: str, records: Sequence[Regulation]) -> List[Any]:
        """
        Build the system/user message pair for one scoring request.

        Args:
            query: User query (sanitized before embedding)
            records: Records to score, indexed 0..n-1

        Returns:
            [SystemMessage, HumanMessage]
        """
        count = len(records)
        projection = json.dumps(
            [reg.projection(i) for i, reg in enumerate(records)],
            ensure_ascii=False
        )
        return [
            SystemMessage(content=DEFAULT_SYSTEM_PROMPT.format(count=count)),
            HumanMessage(content=DEFAULT_USER_PROMPT.format(
                query=sanitize_query(query, max_length=self.max_query_length),
                count=count,
                records=projection
            ))
        ]

    def score_records(
        self,
        query: str,
        records: Sequence[Regulation],
        metrics: Optional['SearchMetrics'] = None
    ) -> List[Regulation]:
        """
        Ask the model for scores and attach them to copies of the records.

        Args:
            query: User query
            records: Records to score
            metrics: Optional per-request metrics to fill in

        Returns:
            One scored copy per input record, in input order (unfiltered)

        Raises:
            TransportError: If the model call fails
            OracleError: If the reply is empty or malformed
        """
        messages = self.build_messages(query, records)

        start = time.perf_counter()
        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            raise TransportError(f"Scoring request failed: {e}") from e
        finally:
            if metrics is not None:
                metrics.oracle_time_ms = (time.perf_counter() - start) * 1000

        content = getattr(response, 'content', None)
        logger.debug(f"Scoring model reply: {content}")

        scores = reconcile_scores(parse_scores(content), len(records))
        logger.debug(f"Scores: {scores}")

        return [reg.with_relevance(score) for reg, score in zip(records, scores)]

    def score(
        self,
        query: str,
        records: Sequence[Regulation],
        metrics: Optional['SearchMetrics'] = None
    ) -> List[Regulation]:
        """
        Score, filter and rank records for a query.

        Falls back to the offline matcher if no record clears the threshold.

        Args:
            query: User query
            records: Records to score (not modified)
            metrics: Optional per-request metrics to fill in

        Returns:
            Scored copies sorted by relevance, descending

        Raises:
            TransportError: If the model call fails
            OracleError: If the reply is empty or malformed
        """
        records = list(records)
        logger.info(f"Scoring query '{query[:50]}' against {len(records)} regulations")
        if not records:
            return []

        if not sanitize_query(query, max_length=self.max_query_length):
            logger.info("Query is empty after sanitization, skipping the scoring model")
            return self._fallback(query, records, 'sanitized', metrics)

        scored = self.score_records(query, records, metrics=metrics)
        results = rank_by_relevance(scored, self.min_relevance)
        logger.info(f"{len(results)} regulations above threshold {self.min_relevance}")

        if not results:
            logger.info("No regulation cleared the threshold, using fallback search")
            return self._fallback(query, records, 'empty', metrics)

        return results

    def _fallback(
        self,
        query: str,
        records: Sequence[Regulation],
        reason: str,
        metrics: Optional['SearchMetrics']
    ) -> List[Regulation]:
        stage, results = fallback_with_stage(query, records)
        if metrics is not None:
            metrics.fallback_reason = reason
            metrics.fallback_stage = stage
        return results
