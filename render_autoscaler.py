#!/usr/bin/env python3
"""
Print the HorizontalPodAutoscaler the operator would create for workload manifests.

No cluster is needed: each Deployment or StatefulSet in the given YAML files
goes through the same annotation filter and synthesizer the operator uses.
"""

import sys
import os
import argparse

import yaml

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from hpaoperator.annotations import AnnotationFilter
from hpaoperator.config import AnnotationSchema, DEFAULT_ANNOTATION_DOMAIN, load_annotation_schema
from hpaoperator.operator import create_synthesizer
from hpaoperator.reconciler import select_annotations
from hpaoperator.workloads import ADAPTERS, workload_from_body


def main():
    parser = argparse.ArgumentParser(description="Render autoscalers from workload annotations")
    parser.add_argument("manifests", nargs="+", help="YAML files with Deployments or StatefulSets")
    parser.add_argument("--api-version", default="autoscaling/v2", help="Autoscaler API version")
    parser.add_argument("--domain", default=DEFAULT_ANNOTATION_DOMAIN, help="Annotation domain")
    parser.add_argument("--schema", help="YAML file with a full annotation schema")

    args = parser.parse_args()

    schema = load_annotation_schema(args.schema) if args.schema else AnnotationSchema(domain=args.domain)
    annotation_filter = AnnotationFilter(schema)
    synthesizer = create_synthesizer(args.api_version, schema)

    rendered = []
    for path in args.manifests:
        with open(path, "r", encoding="utf-8") as fh:
            documents = [doc for doc in yaml.safe_load_all(fh) if doc]

        for body in documents:
            if body.get("kind") not in ADAPTERS:
                continue

            workload = workload_from_body(body)
            label = f"{workload.kind} {workload.namespace}/{workload.name}"
            annotations, source = select_annotations(annotation_filter, workload)

            if not annotations:
                print(f"# {label}: not configured", file=sys.stderr)
                continue

            result = synthesizer.synthesize(workload, annotations)
            for rejection in result.rejected:
                print(f"# {label}: dropped {rejection.key}: {rejection.reason}", file=sys.stderr)

            if result.desired is None:
                print(f"# {label}: no valid autoscaler configuration", file=sys.stderr)
                continue

            print(f"# {label}: configured from {source} annotations", file=sys.stderr)
            rendered.append(synthesizer.render(result.desired))

    yaml.safe_dump_all(rendered, sys.stdout, sort_keys=False)


if __name__ == "__main__":
    main()
