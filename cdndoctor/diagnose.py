"""Orchestrator: resolves symptoms, normalizes, evaluates, correlates, ranks, plans, reports."""
from __future__ import annotations

import logging
from dataclasses import replace

from cdndoctor.config import ERROR_CODE_CATEGORIES, Settings
from cdndoctor.context import CancelToken, RunContext
from cdndoctor.correlator import correlate
from cdndoctor.errors import UnsupportedErrorCodeError
from cdndoctor.models import DiagnosticReport, SymptomCategory, SymptomParams
from cdndoctor.normalizer import normalize, validate_distribution_id
from cdndoctor.planner import plan
from cdndoctor.ranker import rank
from cdndoctor.report import build_report
from cdndoctor.rules.engine import Evaluator
from cdndoctor.sources.base import ConfigSource
from cdndoctor.validation import probe_origins

logger = logging.getLogger(__name__)


def resolve_symptom(error_code: str | int | None) -> SymptomCategory:
    """Map an HTTP error code to its symptom category. None -> GENERAL.

    Raises UnsupportedErrorCodeError for codes outside the known set.
    """
    if error_code is None or str(error_code).strip() == "":
        return SymptomCategory.GENERAL
    code = str(error_code).strip()
    category = ERROR_CODE_CATEGORIES.get(code)
    if category is None:
        raise UnsupportedErrorCodeError(code)
    return SymptomCategory(category)


def diagnose(
    distribution_id: str,
    source: ConfigSource,
    symptoms: SymptomParams | None = None,
    settings: Settings | None = None,
    cancel: CancelToken | None = None,
) -> DiagnosticReport:
    """Run one diagnostic pass and return the report.

    Raises InvalidIdentifierError (fatal) and RunCancelledError; every other
    failure degrades a facet and is listed in the report warnings.
    """
    symptoms = symptoms or SymptomParams()
    settings = settings or Settings()
    context = RunContext(
        distribution_id=validate_distribution_id(distribution_id),
        symptoms=symptoms,
        settings=settings,
        cancel=cancel or CancelToken(),
    )

    try:
        symptom = resolve_symptom(symptoms.error_code)
    except UnsupportedErrorCodeError as e:
        logger.warning("%s; falling back to general analysis", e)
        symptom = SymptomCategory.GENERAL
        context = context.with_warning(
            f"Error code {e.error_code} is not supported; ran general analysis instead."
        )
    context = replace(context, symptom=symptom)

    snapshot = normalize(source, context)
    context = context.bind(snapshot)

    probes = probe_origins(source, snapshot, context)
    raw = Evaluator(workers=settings.rule_workers).evaluate(snapshot, context, probes)
    correlated = correlate(raw, snapshot, context.symptom)
    ranked = rank(correlated)
    logger.info(
        "%s: %d raw findings, %d after correlation", snapshot.distribution_id, len(raw), len(ranked),
    )

    items = plan(ranked, snapshot, context)
    context.cancel.raise_if_cancelled()
    return build_report(snapshot, context, items)
