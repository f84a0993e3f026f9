"""AI insight summaries over filtered records."""
from foundrylog.insights.summarizer import InsightSummarizer, Summarizer, fetch_insight, heuristic_summary

__all__ = ["InsightSummarizer", "Summarizer", "fetch_insight", "heuristic_summary"]
