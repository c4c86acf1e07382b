"""Re-express a backfill plan at Airflow DAG granularity.

Each planned pipeline is mapped to the DAG id parsed from its ``airflow``
link.  Pipelines that share a DAG within one wave merge into a single DAG
entry, and plan edges are rewritten between DAG ids.  Projection fails as
a whole, naming every offender, if any planned or unscheduled pipeline has
no link.
"""

from __future__ import annotations

import logging
import re

from pipeviz_engine.models.analysis import (
    AirflowDag,
    AirflowPlan,
    AirflowWave,
    AnalysisError,
    BackfillPlan,
    DagEdge,
)
from pipeviz_engine.models.estate import EstateConfig

logger = logging.getLogger(__name__)

_DAG_ID_RE = re.compile(r"/dags/([^/?#]+)")


def extract_airflow_dag(airflow_url: str) -> str:
    """Return the DAG id in *airflow_url*, or the URL itself if none is found.

    >>> extract_airflow_dag("https://airflow.example.com/dags/orders_daily/grid?x=1")
    'orders_daily'
    """
    match = _DAG_ID_RE.search(airflow_url)
    return match.group(1) if match else airflow_url


def project_to_airflow(config: EstateConfig, plan: BackfillPlan) -> AirflowPlan | AnalysisError:
    """Project *plan* onto Airflow DAGs."""
    planned = [*plan.planned_pipelines, *plan.unscheduled]
    urls: dict[str, str] = {}
    missing: list[str] = []
    for name in planned:
        pipeline = config.pipeline(name)
        url = pipeline.airflow_url if pipeline is not None else None
        if url:
            urls[name] = url
        else:
            missing.append(name)

    if missing:
        logger.info("Airflow projection refused: %d pipeline(s) lack airflow links", len(missing))
        return AnalysisError(
            error="missing_airflow_links",
            message=(
                "Cannot generate Airflow backfill plan. The following pipelines are missing "
                f"airflow links: {', '.join(missing)}"
            ),
            offending=tuple(missing),
        )

    dag_of = {name: extract_airflow_dag(url) for name, url in urls.items()}

    waves: list[AirflowWave] = []
    for wave in plan.waves:
        merged: dict[str, list[str]] = {}
        first_url: dict[str, str] = {}
        for member in wave.pipelines:
            dag = dag_of[member.name]
            merged.setdefault(dag, []).append(member.name)
            first_url.setdefault(dag, urls[member.name])
        waves.append(
            AirflowWave(
                wave=wave.wave,
                parallel_count=len(merged),
                dags=tuple(
                    AirflowDag(dag=dag, airflow_url=first_url[dag], pipelines=tuple(members))
                    for dag, members in merged.items()
                ),
            )
        )

    edges: dict[tuple[str, str], None] = {}
    for edge in plan.edges:
        source_dag = dag_of[edge.source]
        target_dag = dag_of[edge.target]
        if source_dag != target_dag:
            edges.setdefault((source_dag, target_dag), None)

    return AirflowPlan(
        nodes=plan.nodes,
        total_dags=len(set(dag_of.values())),
        total_waves=len(waves),
        waves=tuple(waves),
        edges=tuple(DagEdge(source_dag=s, target_dag=t) for s, t in edges),
    )
