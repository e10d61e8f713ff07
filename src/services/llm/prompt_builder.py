"""Prompt Builder Module

This module handles:
- Building provider-specific (system, user) prompt pairs per research type
- Rendering focus areas, depth, audience and output format
- Building the cross-provider comparison prompt
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import structlog

from src.models.research import (
    OutputFormat,
    ResearchDepth,
    ResearchType,
    TargetAudience,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str


@dataclass(frozen=True)
class ResearchFrame:
    """Provider-neutral description of one research type.

    Attributes:
        expert: Persona used in the system prompt
        task: Verb phrase describing the work ("market analysis")
        sections: Ordered (heading, bullet points) the answer must cover
    """

    expert: str
    task: str
    sections: Tuple[Tuple[str, Tuple[str, ...]], ...]


RESEARCH_FRAMES: Dict[ResearchType, ResearchFrame] = {
    ResearchType.MARKET_ANALYSIS: ResearchFrame(
        expert="senior market research analyst with 15+ years of experience",
        task="market analysis",
        sections=(
            ("Market Overview & Size", (
                "Current market size and growth trajectory",
                "Key market segments and their dynamics",
                "Geographic distribution and regional variations",
            )),
            ("Competitive Landscape", (
                "Major players and market share",
                "Positioning and differentiation strategies",
                "Emerging competitors and disruptors",
            )),
            ("Market Trends & Drivers", (
                "Trends shaping the market",
                "Growth drivers and inhibitors",
                "Technology and innovation impacts",
            )),
            ("Opportunities & Challenges", (
                "Market gaps and unmet needs",
                "Opportunities for new entrants",
                "Regulatory and operational challenges",
            )),
            ("Future Outlook", (
                "3-5 year projections",
                "Scenario analysis and potential disruptions",
                "Strategic recommendations",
            )),
        ),
    ),
    ResearchType.COMPETITIVE_INTELLIGENCE: ResearchFrame(
        expert="competitive intelligence specialist with deep strategic analysis experience",
        task="competitive intelligence research",
        sections=(
            ("Competitive Landscape Mapping", (
                "Direct and indirect competitors",
                "Market positioning matrix",
                "Competitive tiers",
            )),
            ("Competitor Profiling", (
                "Strengths, weaknesses and strategies of key players",
                "Financial performance and market share",
                "Leadership and organizational capabilities",
            )),
            ("Strategic Analysis", (
                "Business models and competitive strategies",
                "Product and service differentiation",
                "Pricing strategies and value propositions",
            )),
            ("Market Dynamics", (
                "Competitive intensity",
                "Concentration and fragmentation",
                "New entrants and substitutes",
            )),
            ("Intelligence Insights", (
                "Competitive gaps and opportunities",
                "Recommendations for competitive advantage",
                "Early warning indicators",
            )),
        ),
    ),
    ResearchType.INVESTMENT_RESEARCH: ResearchFrame(
        expert="investment research analyst covering public and private markets",
        task="investment research",
        sections=(
            ("Investment Thesis", (
                "Core thesis and value drivers",
                "Market opportunity and total addressable market",
                "Catalysts and timing",
            )),
            ("Financial Analysis", (
                "Revenue model and unit economics",
                "Profitability and cash flow profile",
                "Valuation approaches and comparables",
            )),
            ("Risk Assessment", (
                "Market, execution and regulatory risks",
                "Competitive threats",
                "Downside scenarios",
            )),
            ("Market Position", (
                "Moat and defensibility",
                "Management and governance",
                "Capital allocation track record",
            )),
            ("Recommendation", (
                "Overall investment view",
                "Key metrics to monitor",
                "Entry and exit considerations",
            )),
        ),
    ),
    ResearchType.TREND_ANALYSIS: ResearchFrame(
        expert="trend forecaster and strategic foresight analyst",
        task="trend analysis",
        sections=(
            ("Current Trend Landscape", (
                "Dominant trends and their maturity",
                "Weak signals and emerging patterns",
                "Adoption curves",
            )),
            ("Drivers & Enablers", (
                "Technological drivers",
                "Social, economic and regulatory forces",
                "Enablers and bottlenecks",
            )),
            ("Impact Assessment", (
                "Industries and stakeholders affected",
                "Business model implications",
                "Second-order effects",
            )),
            ("Future Scenarios", (
                "Likely, optimistic and pessimistic scenarios",
                "Timeline and milestones",
                "Indicators to track",
            )),
            ("Strategic Implications", (
                "Opportunities to capture",
                "Threats to mitigate",
                "Recommended actions",
            )),
        ),
    ),
    ResearchType.CUSTOM: ResearchFrame(
        expert="senior research analyst with broad cross-industry expertise",
        task="research",
        sections=(
            ("Overview", (
                "Scope and key definitions",
                "Current state of the subject",
            )),
            ("Key Findings", (
                "Most important facts and evidence",
                "Notable players, data points and examples",
            )),
            ("Analysis", (
                "Drivers, constraints and dynamics",
                "Risks and open questions",
            )),
            ("Recommendations", (
                "Actionable recommendations",
                "Next steps for further research",
            )),
        ),
    ),
}

DEPTH_PHRASES: Dict[ResearchDepth, str] = {
    ResearchDepth.BASIC: "concise, high-level",
    ResearchDepth.COMPREHENSIVE: "comprehensive",
    ResearchDepth.EXPERT: "expert-level, in-depth",
}

FORMAT_INSTRUCTIONS: Dict[OutputFormat, str] = {
    OutputFormat.SUMMARY: "Keep the response short: a brief summary with the key takeaways.",
    OutputFormat.DETAILED: "Provide a detailed report with clear headings.",
    OutputFormat.EXECUTIVE: "Open with an executive summary, then support it with the detail.",
    OutputFormat.TECHNICAL: "Include technical detail, data sources and methodology notes.",
}

AUDIENCE_INSTRUCTIONS: Dict[TargetAudience, str] = {
    TargetAudience.EXECUTIVES: "business executives making strategic decisions",
    TargetAudience.ANALYSTS: "professional analysts who want evidence and reasoning",
    TargetAudience.INVESTORS: "investors evaluating risk and return",
    TargetAudience.GENERAL: "a general, non-specialist audience",
}

COMPARISON_DIMENSIONS = ("accuracy", "depth", "relevance", "clarity", "innovation")


class PromptBuilder:
    """Builds provider-specific research prompts.

    Each provider receives the same research frame rendered in its own
    house style:
    - claude: numbered sections, focus areas as a bullet list
    - openai: bold headed sections, focus areas comma-joined
    - grok: markdown headings with an explicit brief for contrarian takes
    Unknown providers fall back to the openai style.
    """

    def build(
        self,
        provider: str,
        topic: str,
        research_type: ResearchType,
        depth: ResearchDepth = ResearchDepth.COMPREHENSIVE,
        focus_areas: Sequence[str] = (),
        output_format: OutputFormat = OutputFormat.DETAILED,
        target_audience: TargetAudience = TargetAudience.EXECUTIVES,
    ) -> PromptPair:
        """Build the (system, user) prompt pair for one provider.

        Args:
            provider: Provider name (claude, openai, grok)
            topic: Research topic
            research_type: Research type selecting the frame
            depth: Research depth
            focus_areas: Optional focus areas
            output_format: Desired output shape
            target_audience: Intended readers

        Returns:
            PromptPair with system and user prompts
        """
        frame = RESEARCH_FRAMES[research_type]
        focus = [area for area in focus_areas if area]
        depth_phrase = DEPTH_PHRASES[depth]
        closing = (
            f"Write for {AUDIENCE_INSTRUCTIONS[target_audience]}. "
            f"{FORMAT_INSTRUCTIONS[output_format]}"
        )

        if provider == "claude":
            pair = self._claude_style(frame, topic, depth_phrase, focus, closing)
        elif provider == "grok":
            pair = self._grok_style(frame, topic, depth_phrase, focus, closing)
        else:
            pair = self._openai_style(frame, topic, depth_phrase, focus, closing)

        logger.debug(
            "research_prompt_built",
            provider=provider,
            research_type=research_type.value,
            user_prompt_chars=len(pair.user),
        )
        return pair

    @staticmethod
    def _claude_style(
        frame: ResearchFrame,
        topic: str,
        depth_phrase: str,
        focus: List[str],
        closing: str,
    ) -> PromptPair:
        system = (
            f"You are a {frame.expert}. Provide structured, data-driven "
            f"{frame.task} that is valuable for strategic decision-making."
        )
        lines = [f"Conduct a {depth_phrase} {frame.task} on: {topic}", ""]
        if focus:
            lines.append("Focus particularly on these areas:")
            lines.extend(f"- {area}" for area in focus)
            lines.append("")
        lines.append("Please provide an analysis including:")
        lines.append("")
        for index, (heading, bullets) in enumerate(frame.sections, start=1):
            lines.append(f"{index}. **{heading}**")
            lines.extend(f"   - {bullet}" for bullet in bullets)
            lines.append("")
        lines.append(
            "Structure your response with clear headings and specific, "
            "actionable insights throughout."
        )
        lines.append(closing)
        return PromptPair(system=system, user="\n".join(lines))

    @staticmethod
    def _openai_style(
        frame: ResearchFrame,
        topic: str,
        depth_phrase: str,
        focus: List[str],
        closing: str,
    ) -> PromptPair:
        system = (
            f"You are an expert consultant acting as a {frame.expert}. Your "
            f"analysis should be thorough, data-driven and actionable."
        )
        lines = [f"Please conduct a {depth_phrase} {frame.task} on: {topic}", ""]
        if focus:
            lines.append(f"Key focus areas: {', '.join(focus)}")
            lines.append("")
        lines.append("Provide an analysis covering:")
        lines.append("")
        for heading, bullets in frame.sections:
            lines.append(f"**{heading}:**")
            lines.extend(f"- {bullet}" for bullet in bullets)
            lines.append("")
        lines.append("Provide detailed insights with logical reasoning and clear structure.")
        lines.append(closing)
        return PromptPair(system=system, user="\n".join(lines))

    @staticmethod
    def _grok_style(
        frame: ResearchFrame,
        topic: str,
        depth_phrase: str,
        focus: List[str],
        closing: str,
    ) -> PromptPair:
        system = (
            f"You are a {frame.expert} known for candid, evidence-first "
            f"analysis. Challenge consensus views where the evidence supports "
            f"it and flag uncertainty explicitly."
        )
        lines = [f"Topic: {topic}", f"Task: {depth_phrase} {frame.task}"]
        if focus:
            lines.append(f"Focus: {'; '.join(focus)}")
        lines.append("")
        for heading, bullets in frame.sections:
            lines.append(f"## {heading}")
            lines.append(", ".join(bullets) + ".")
            lines.append("")
        lines.append(
            "Finish with a section named 'Contrarian View' covering what the "
            "mainstream analysis is most likely to get wrong."
        )
        lines.append(closing)
        return PromptPair(system=system, user="\n".join(lines))

    def build_comparison(
        self, topic: str, outputs: Sequence[Tuple[str, str]]
    ) -> PromptPair:
        """Build the prompt comparing research outputs.

        Args:
            topic: Research topic
            outputs: (provider, content) pairs in request order

        Returns:
            PromptPair asking for JSON scores and analysis
        """
        system = (
            "You are an expert research analyst specializing in comparative "
            "analysis. Objectively compare and evaluate research outputs from "
            "different AI systems, identifying their relative strengths and "
            "weaknesses."
        )
        lines = [f'Analyze and compare the following research outputs on "{topic}":', ""]
        for index, (provider, content) in enumerate(outputs):
            label = chr(ord("A") + index)
            lines.append(f"**Research Output {label} ({provider}):**")
            lines.append(content or "Not available")
            lines.append("")

        dimensions = ", ".join(COMPARISON_DIMENSIONS)
        lines.extend(
            [
                "Provide a structured comparison including:",
                f"1. Quality scores from 1-10 for each output on: {dimensions}",
                "2. Strengths of each output",
                "3. Weaknesses of each output",
                "4. An overall recommendation: which output is most valuable "
                "and how to combine their insights",
                "",
                "Respond with a single JSON object of the form:",
                '{"scores": {"<provider>": {"accuracy": 0, "depth": 0, '
                '"relevance": 0, "clarity": 0, "innovation": 0}}, '
                '"strengths": {"<provider>": ["..."]}, '
                '"weaknesses": {"<provider>": ["..."]}, '
                '"recommendation": "..."}',
            ]
        )
        return PromptPair(system=system, user="\n".join(lines))
