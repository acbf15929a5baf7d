"""Prompt templates for chunk-level extraction and final synthesis."""

from __future__ import annotations

from typing import Dict, List

from policy_rag.summarizer.generation import ChatMessage
from policy_rag.summarizer.models import DocumentChunk, SummaryRequest

SECTION_GUIDANCE: Dict[str, str] = {
    "declarations": "Extract: Named insured, policy period, limits, premiums, covered locations.",
    "insuring_agreement": "Extract: What is covered, coverage triggers, insuring clause scope.",
    "definitions": "Extract: Key defined terms and their meanings relevant to coverage.",
    "exclusions": "Extract: What is NOT covered, exclusion conditions, exceptions to exclusions.",
    "conditions": "Extract: Policyholder duties, claim procedures, cancellation terms.",
    "limits": "Extract: Per occurrence limits, aggregate limits, sublimits, shared limits.",
    "deductibles": "Extract: Deductible amounts, application (per claim/occurrence), waiting periods.",
    "endorsements": "Extract: Coverage modifications, additional insureds, special conditions.",
    "schedule": "Extract: Scheduled items, values, locations, classifications.",
    "general": "Extract: Key coverage terms, conditions, and notable provisions.",
}

FOCUS_BY_TYPE: Dict[str, str] = {
    "executive": "business impact, costs, risks, opportunities",
    "technical": "coverage terms, limits, conditions, exclusions",
    "comparative": "similarities, differences, strengths, weaknesses",
    "compliance": "regulations, requirements, deadlines, filings",
    "actionable": "action items, decisions, recommendations",
    "comprehensive": "all aspects including coverage, pricing, compliance",
}

TYPE_INSTRUCTIONS: Dict[str, str] = {
    "executive": """Create an executive summary for insurance leadership:
- Product overview and market positioning
- Key coverage highlights and competitive advantages
- Premium/pricing summary
- Risk considerations and recommendations""",
    "technical": """Provide a detailed technical analysis:
- Coverage grants and insuring agreements
- Limits structure (per occurrence, aggregate, sublimits)
- Deductible structure and application
- Key exclusions and conditions
- Endorsement modifications""",
    "comparative": """Compare and contrast the insurance products:
- Coverage scope differences
- Limit and deductible comparisons
- Pricing differentials
- Unique features of each product""",
    "compliance": """Focus on regulatory and compliance aspects:
- State filing requirements
- Regulatory compliance status
- Required endorsements by jurisdiction
- Potential compliance gaps""",
    "actionable": """Extract action items for the insurance team:
- Required form updates
- Pricing adjustments needed
- Compliance deadlines
- Product enhancement opportunities""",
    "comprehensive": """Provide a complete product analysis:
- Coverage summary
- Limits and deductibles
- Key exclusions
- Pricing overview
- Compliance status
- Recommendations""",
}

OUTPUT_FORMAT = """OUTPUT FORMAT:
- Use clear section headings
- Include specific dollar amounts and percentages
- Reference source documents when citing specifics
- Highlight critical items with [CRITICAL] or [IMPORTANT] tags"""

CONTEXT_SEPARATOR = "\n\n---\n\n"


def section_label(chunk: DocumentChunk) -> str:
    section = chunk.metadata.section
    return "General" if section == "general" else section


def tag_chunk(chunk: DocumentChunk) -> str:
    return f"[{chunk.metadata.source_title} - {section_label(chunk)}]\n{chunk.content}"


def build_chunk_messages(chunk: DocumentChunk, summary_type: str) -> List[ChatMessage]:
    guidance = SECTION_GUIDANCE.get(chunk.metadata.section, SECTION_GUIDANCE["general"])
    system = (
        "You are a P&C insurance document analyst. Extract key information "
        f"from this {chunk.metadata.domain_type} content.\n"
        f"{guidance}\n"
        f"Focus on: {FOCUS_BY_TYPE[summary_type]}\n"
        "Be concise. Use bullet points. Include specific values (limits, deductibles, dates)."
    )
    user = f"[{chunk.metadata.source_title}] {section_label(chunk)}\n\n{chunk.content}"
    return [ChatMessage("system", system), ChatMessage("user", user)]


def build_synthesis_messages(context: str, request: SummaryRequest) -> List[ChatMessage]:
    system = (
        f"You are a senior P&C insurance analyst creating a {request.summary_type} summary.\n"
        f"{TYPE_INSTRUCTIONS[request.summary_type]}\n\n{OUTPUT_FORMAT}"
    )
    if request.focus_areas:
        system += f"\n\nPRIORITY FOCUS: {', '.join(request.focus_areas)}"
    if request.system_suffix:
        system += f"\n\n{request.system_suffix}"
    user = f"Analyze and synthesize these insurance document excerpts:\n\n{context}"
    return [ChatMessage("system", system), ChatMessage("user", user)]
