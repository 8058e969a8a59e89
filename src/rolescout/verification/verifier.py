"""Per-role verification: web search first, language-model judge second.

Each role goes through at most three stages:

1. Targeted web queries (film database, encyclopedia, "played"/"as"
   phrasing). Hits accumulate across queries and are re-analysed after
   each one; decisive evidence stops the query sequence early.
2. If search is unavailable or inconclusive, one judge call.
3. If neither is available, the role is allowed with UNKNOWN confidence.

Every external call is charged to a per-run :class:`CostMeter`. Once an
optional budget is exhausted no further calls are issued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from rolescout.config import Thresholds
from rolescout.constants import BATCH_DELAY_SECONDS, QUERY_DELAY_SECONDS, VERIFY_BATCH_SIZE
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import (
    CandidateRole,
    Confidence,
    SourceTag,
    VerificationReason,
    VerificationResult,
)
from rolescout.sources.llm import CreditExhaustedException, JudgeError, MistralJudge
from rolescout.sources.serp import SearchError, SerpSearchClient
from rolescout.verification.analysis import decisive_result, final_result, summarize_evidence
from rolescout.verification.parser import VerdictKind, parse_verdict
from rolescout.verification.prompts import JUDGE_SYSTEM_PROMPT, build_verify_prompt

logger = logging.getLogger(__name__)

RESULTS_PER_QUERY = 10


@dataclass
class CostMeter:
    """Accumulates verification cost units for one run."""

    budget: float | None = None
    total: float = 0.0
    web_queries: int = 0
    judge_calls: int = 0

    def can_spend(self, amount: float) -> bool:
        if self.budget is None:
            return True
        return self.total + amount <= self.budget + 1e-12

    def charge_web(self, amount: float) -> None:
        self.total += amount
        self.web_queries += 1

    def charge_judge(self, amount: float) -> None:
        self.total += amount
        self.judge_calls += 1


def build_queries(subject: str, role: CandidateRole) -> list[str]:
    title = role.title
    character = role.character
    if character:
        return [
            f'"{subject}" "{title}" cast site:imdb.com',
            f'"{subject}" "{character}" site:imdb.com',
            f'"{subject}" "{title}" site:wikipedia.org',
            f'"{subject}" played "{character}" "{title}"',
            f'"{subject}" as "{character}" "{title}"',
        ]
    return [
        f'"{subject}" "{title}" cast site:imdb.com',
        f'"{subject}" "{title}" site:wikipedia.org',
        f'"{subject}" "{title}" role',
    ]


class RoleVerifier:
    """Verifies candidate roles for one discovery run.

    Args:
        search: Web search client, or None when unavailable.
        judge: Language-model judge, or None when unavailable.
        cost_meter: Per-run cost accumulator (and optional budget).
        thresholds: Cost units per call.
        query_delay: Seconds between sequential queries for one role.
        batch_size: Roles verified concurrently per batch.
        concurrency: Upper bound on roles in flight within a batch.
        batch_delay: Seconds between batches.
    """

    def __init__(
        self,
        search: SerpSearchClient | None,
        judge: MistralJudge | None,
        cost_meter: CostMeter | None = None,
        thresholds: Thresholds | None = None,
        query_delay: float = QUERY_DELAY_SECONDS,
        batch_size: int = VERIFY_BATCH_SIZE,
        concurrency: int = 3,
        batch_delay: float = BATCH_DELAY_SECONDS,
        lexicon: Lexicon | None = None,
    ) -> None:
        self._search = search
        self._judge = judge
        self.cost = cost_meter or CostMeter()
        self._thresholds = thresholds or Thresholds()
        self._query_delay = query_delay
        self._batch_size = max(1, batch_size)
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._batch_delay = batch_delay
        self._lexicon = lexicon or load_lexicon()
        self._budget_exhausted = False

    @property
    def search_available(self) -> bool:
        return self._search is not None and self._search.is_configured

    @property
    def judge_available(self) -> bool:
        return self._judge is not None and self._judge.is_configured

    async def verify(self, subject: str, role: CandidateRole, lenient: bool = False) -> VerificationResult:
        """Verify one role. Never raises for source failures."""
        lenient = lenient or role.source_tag is SourceTag.EMERGENCY_RECOVERY
        inconclusive: VerificationResult | None = None

        if self.search_available:
            web_result = await self._verify_web(subject, role, lenient)
            if web_result is not None:
                if web_result.confidence is not Confidence.UNKNOWN:
                    return web_result
                inconclusive = web_result

        if self.judge_available:
            judged = await self._verify_with_judge(subject, role)
            if judged is not None:
                if inconclusive is not None and judged.discovered_character is None:
                    return VerificationResult(
                        is_valid=judged.is_valid,
                        confidence=judged.confidence,
                        reason=judged.reason,
                        code=judged.code,
                        discovered_character=inconclusive.discovered_character,
                    )
                return judged

        if inconclusive is not None:
            return inconclusive

        if self._budget_exhausted:
            return VerificationResult(
                is_valid=True,
                confidence=Confidence.UNKNOWN,
                reason="Verification budget exhausted, allowing role",
                code=VerificationReason.BUDGET_EXHAUSTED,
            )
        return VerificationResult(
            is_valid=True,
            confidence=Confidence.UNKNOWN,
            reason="No verification available, allowing role",
            code=VerificationReason.UNVERIFIED,
        )

    async def _verify_web(
        self, subject: str, role: CandidateRole, lenient: bool
    ) -> VerificationResult | None:
        """Run the query sequence; None if no query succeeded."""
        hits = []
        successes = 0
        for i, query in enumerate(build_queries(subject, role)):
            if not self.cost.can_spend(self._thresholds.web_search_cost):
                self._budget_exhausted = True
                logger.info("Cost budget reached while verifying %s", role.label)
                break
            if i and self._query_delay:
                await asyncio.sleep(self._query_delay)
            self.cost.charge_web(self._thresholds.web_search_cost)
            try:
                new_hits = await self._search.search(query, num=RESULTS_PER_QUERY)
            except SearchError as e:
                logger.debug("Verification query failed (%s): %s", query, e)
                continue
            successes += 1
            hits.extend(new_hits)

            summary = summarize_evidence(hits, subject, role.title, role.character, self._lexicon)
            decided = decisive_result(summary)
            if decided is not None:
                logger.info(
                    "Verified %s: %s (%s) after %d queries",
                    role.label,
                    decided.reason,
                    decided.confidence.value,
                    i + 1,
                )
                return decided

        if successes == 0:
            return None

        summary = summarize_evidence(hits, subject, role.title, role.character, self._lexicon)
        result = final_result(summary, has_character=bool(role.character), lenient=lenient)
        logger.info(
            "Verified %s: %s (%s, valid=%s)",
            role.label,
            result.reason,
            result.confidence.value,
            result.is_valid,
        )
        return result

    async def _verify_with_judge(self, subject: str, role: CandidateRole) -> VerificationResult | None:
        if not self.cost.can_spend(self._thresholds.judge_cost):
            self._budget_exhausted = True
            return None
        self.cost.charge_judge(self._thresholds.judge_cost)
        prompt = build_verify_prompt(subject, role.title, role.character)
        try:
            text = await self._judge.judge(prompt, system_prompt=JUDGE_SYSTEM_PROMPT)
        except CreditExhaustedException as e:
            logger.error("Judge disabled for the rest of the run: %s", e)
            return None
        except JudgeError as e:
            logger.warning("Judge unavailable for %s: %s", role.label, e)
            return None

        verdict = parse_verdict(text)
        if verdict.kind is VerdictKind.CONFIRMED:
            return VerificationResult(
                is_valid=True,
                confidence=verdict.confidence,
                reason=f"AI verification: {verdict.reason or 'confirmed'}",
                code=VerificationReason.JUDGE_CONFIRMED,
            )
        elif verdict.kind is VerdictKind.REJECTED and verdict.confidence in (
            Confidence.HIGH,
            Confidence.MEDIUM,
        ):
            return VerificationResult(
                is_valid=False,
                confidence=verdict.confidence,
                reason=f"AI verification: {verdict.reason or 'rejected'}",
                code=VerificationReason.JUDGE_REJECTED,
            )
        else:
            logger.debug("Judge answer for %s not usable: %r", role.label, verdict.raw)
            return VerificationResult(
                is_valid=True,
                confidence=Confidence.UNKNOWN,
                reason="AI verification uncertain, allowing role",
                code=VerificationReason.JUDGE_UNCERTAIN,
            )

    async def _verify_one(self, subject: str, role: CandidateRole, lenient: bool) -> VerificationResult:
        async with self._semaphore:
            return await self.verify(subject, role, lenient=lenient)

    async def verify_many(
        self,
        subject: str,
        roles: list[CandidateRole],
        lenient: bool = False,
    ) -> tuple[list[CandidateRole], list[CandidateRole]]:
        """Verify *roles* in batches; returns ``(verified, rejected)``.

        Each role's ``verification`` is set. A character discovered while
        verifying a title-only role is copied onto the role.
        """
        verified: list[CandidateRole] = []
        rejected: list[CandidateRole] = []
        for start in range(0, len(roles), self._batch_size):
            if start and self._batch_delay:
                await asyncio.sleep(self._batch_delay)
            batch = roles[start : start + self._batch_size]
            results = await asyncio.gather(
                *(self._verify_one(subject, role, lenient) for role in batch)
            )
            for role, result in zip(batch, results):
                role.verification = result
                if result.discovered_character and not role.character:
                    role.character = result.discovered_character
                if result.is_valid:
                    verified.append(role)
                else:
                    rejected.append(role)

        logger.info(
            "Verification for %r: %d verified, %d rejected, cost %.4f",
            subject,
            len(verified),
            len(rejected),
            self.cost.total,
        )
        return verified, rejected
