"""
Issue External Service Integrations
===================================

Root-cause summary generation through the Groq chat API, with a
deterministic fallback used when no client is configured, the call fails,
or it exceeds the configured timeout.
"""

import asyncio
from typing import Optional

from src.config import MOCK_SUMMARY_MODEL, IssueCategory, IssuePriority, settings
from src.infrastructure.llm import ILLMClient
from src.issues.application import ISummaryGenerator, SummaryResult
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


SUMMARY_PROMPT = """You are a compliance expert specializing in root cause analysis for regulated industries (Pharma, MedTech, Manufacturing).
Analyze the following compliance issue and provide a structured root cause summary including:
1. Root Cause Identification
2. Contributing Factors
3. Impact Assessment
4. Recommended Corrective Actions
5. Preventive Measures

Be concise, professional, and actionable.

Issue Title: {title}
Description: {description}
Category: {category}
Priority: {priority}

Please provide a root cause analysis summary."""


def _regulatory_risk(priority: IssuePriority) -> str:
    if priority == IssuePriority.CRITICAL:
        return "High, potential regulatory action"
    if priority == IssuePriority.HIGH:
        return "Moderate, requires prompt remediation"
    return "Low to Moderate"


def build_mock_summary(title: str, category: IssueCategory, priority: IssuePriority) -> str:
    """Deterministic summary text with the same five sections as the prompt asks for."""
    category_name = category.value
    if priority in (IssuePriority.CRITICAL, IssuePriority.HIGH):
        urgency = "Immediate attention required due to high-priority classification"
    else:
        urgency = "Standard review procedures recommended"

    return f"""## Root Cause Analysis Summary (Mock)

Issue: {title}

Category: {category_name} | Priority: {priority.value}

1. Root Cause Identification
Based on the reported issue, the primary root cause appears to be related to {category_name.lower()} compliance gaps in the current operational workflow. The issue "{title}" indicates a systematic failure in established protocols.

2. Contributing Factors
- Inadequate monitoring and detection mechanisms
- {urgency}

3. Impact Assessment
- Scope: {category_name} compliance area
- Severity: {priority.value}
- Regulatory Risk: {_regulatory_risk(priority)}

4. Recommended Corrective Actions
1. Conduct thorough investigation of the reported issue
2. Review and update relevant SOPs and work instructions

5. Preventive Measures
1. Enhance monitoring and early detection systems
2. Conduct targeted training for affected teams

This summary was generated by the fallback engine. Please review and validate findings with subject matter experts."""


class LLMSummaryGenerator(ISummaryGenerator):
    """
    Summary generator backed by an ILLMClient.

    generate() never raises: any client error or timeout degrades to the
    mock summary, reported with model MOCK_SUMMARY_MODEL.
    """

    def __init__(self, client: Optional[ILLMClient] = None, timeout_seconds: Optional[float] = None):
        self._client = client
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.llm_timeout_seconds

    def _fallback(self, title: str, category: IssueCategory, priority: IssuePriority,
                  error: Optional[str] = None) -> SummaryResult:
        return SummaryResult(
            summary=build_mock_summary(title, category, priority),
            model=MOCK_SUMMARY_MODEL,
            error=error,
        )

    async def generate(
        self,
        title: str,
        description: str,
        category: IssueCategory,
        priority: IssuePriority
    ) -> SummaryResult:
        if self._client is None:
            return self._fallback(title, category, priority)

        prompt = SUMMARY_PROMPT.format(
            title=title,
            description=description,
            category=category.value,
            priority=priority.value,
        )

        try:
            result = await asyncio.wait_for(
                self._client.chat_completion(
                    messages=[{"role": "user", "content": prompt}],
                    temperature=settings.llm_temperature,
                    max_tokens=settings.llm_max_tokens,
                    operation="root_cause_summary",
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Summary generation timed out, using fallback", extra={"timeout": self._timeout})
            return self._fallback(title, category, priority, f"timed out after {self._timeout}s")
        except Exception as e:
            logger.warning("Summary generation failed, using fallback", extra={"error": str(e)})
            return self._fallback(title, category, priority, str(e))

        return SummaryResult(summary=result.content, model=result.model)
