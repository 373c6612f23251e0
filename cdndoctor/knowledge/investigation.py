"""Additional diagnostic commands per symptom category."""
from __future__ import annotations

COMMON_COMMANDS = [
    "aws cloudfront get-distribution --id {distribution_id}",
    "aws cloudfront list-invalidations --distribution-id {distribution_id} --max-items 5",
]

INVESTIGATION_COMMANDS: dict[str, list[str]] = {
    "access-denied": [
        "aws s3api get-bucket-policy --bucket {bucket} --query Policy --output text",
        "aws s3api get-public-access-block --bucket {bucket}",
        "aws cloudfront list-origin-access-controls",
        "aws wafv2 get-web-acl-for-resource --resource-arn {distribution_arn} --region us-east-1",
        "curl -sI https://{distribution_domain}{request_path}",
    ],
    "not-found": [
        "aws s3 ls s3://{bucket}/ --recursive | head -50",
        "aws s3api head-object --bucket {bucket} --key {request_key}",
        "aws cloudfront get-distribution-config --id {distribution_id} "
        "--query 'DistributionConfig.[DefaultRootObject,CacheBehaviors.Items[].PathPattern]'",
    ],
    "server-error": [
        # Origin health metrics: latency and error rate seen from the edge
        "aws cloudwatch get-metric-statistics --namespace AWS/CloudFront --metric-name OriginLatency "
        "--dimensions Name=DistributionId,Value={distribution_id} Name=Region,Value=Global "
        "--statistics Average Maximum --period 300 --start-time <start> --end-time <end> --region us-east-1",
        "aws cloudwatch get-metric-statistics --namespace AWS/CloudFront --metric-name 5xxErrorRate "
        "--dimensions Name=DistributionId,Value={distribution_id} Name=Region,Value=Global "
        "--statistics Average --period 300 --start-time <start> --end-time <end> --region us-east-1",
        "curl -sv --max-time 10 https://{origin_domain}/ -o /dev/null",
    ],
    "general": [
        "aws cloudfront get-monitoring-subscription --distribution-id {distribution_id}",
    ],
}

# Categories contributing commands for each resolved symptom (general covers everything)
SYMPTOM_SECTIONS: dict[str, list[str]] = {
    "access-denied": ["access-denied"],
    "not-found": ["not-found"],
    "server-error": ["server-error"],
    "general": ["access-denied", "not-found", "server-error", "general"],
}


def commands_for(symptom: str, finding_categories: set[str] | None = None) -> list[str]:
    """Command templates for *symptom*, plus sections for any finding categories present."""
    sections = list(SYMPTOM_SECTIONS.get(symptom, ["general"]))
    for category in sorted(finding_categories or ()):
        if category in INVESTIGATION_COMMANDS and category not in sections:
            sections.append(category)
    out = list(COMMON_COMMANDS)
    for section in sections:
        for cmd in INVESTIGATION_COMMANDS[section]:
            if cmd not in out:
                out.append(cmd)
    return out
