"""Tests for the boto3-backed Config Source.

The boto3 session and clients are mocked; no AWS credentials are needed.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests
from botocore.exceptions import ClientError, EndpointConnectionError

from cdndoctor.errors import (
    InvalidIdentifierError, PermissionDeniedError, TransientSourceError, ValidationProbeError,
)
from cdndoctor.models import OriginConfig, OriginKind, OriginProtocol, ProbeOutcome
from cdndoctor.sources.aws import AwsConfigSource, summarize_web_acl


# ── Helpers ─────────────────────────────────────────────────────────


def client_error(code, operation="GetDistribution"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def make_source():
    """AwsConfigSource whose session hands out one shared MagicMock client."""
    session = MagicMock()
    client = MagicMock()
    session.client.return_value = client
    return AwsConfigSource(session=session), client


BUCKET = OriginConfig(
    origin_id="s3-assets", kind=OriginKind.OBJECT_STORAGE, domain="assets.s3.us-east-1.amazonaws.com",
)


# ── Distribution ────────────────────────────────────────────────────


def test_get_distribution_passes_through():
    source, client = make_source()
    client.get_distribution.return_value = {"Distribution": {"Id": "E1ABCDEF"}}
    assert source.get_distribution("E1ABCDEF")["Distribution"]["Id"] == "E1ABCDEF"
    client.get_distribution.assert_called_once_with(Id="E1ABCDEF")


@pytest.mark.parametrize("code,expected", [
    ("NoSuchDistribution", InvalidIdentifierError),
    ("AccessDenied", PermissionDeniedError),
    ("Throttling", TransientSourceError),
    ("SomethingElse", PermissionDeniedError),
])
def test_client_errors_translated(code, expected):
    source, client = make_source()
    client.get_distribution.side_effect = client_error(code)
    with pytest.raises(expected):
        source.get_distribution("E1ABCDEF")


def test_transport_error_is_transient():
    source, client = make_source()
    client.get_distribution.side_effect = EndpointConnectionError(endpoint_url="https://cloudfront")
    with pytest.raises(TransientSourceError):
        source.get_distribution("E1ABCDEF")


def test_clients_are_cached():
    source, _ = make_source()
    source._client("cloudfront")
    source._client("cloudfront")
    assert source.session.client.call_count == 1


# ── Origin detail ───────────────────────────────────────────────────


def test_bucket_detail_collects_policy_and_keys():
    source, s3 = make_source()
    s3.get_bucket_policy.return_value = {"Policy": '{"Statement": []}'}
    s3.get_public_access_block.side_effect = client_error("NoSuchPublicAccessBlockConfiguration")
    s3.get_bucket_acl.return_value = {"Grants": [
        {"Grantee": {"Type": "Group", "URI": "http://acs.amazonaws.com/groups/global/AllUsers"}},
    ]}
    s3.list_objects_v2.return_value = {"Contents": [{"Key": "index.html"}], "IsTruncated": False}
    s3.get_bucket_website.side_effect = client_error("NoSuchWebsiteConfiguration")

    detail = source.get_origin_detail(BUCKET)
    assert detail["BucketPolicy"] == '{"Statement": []}'
    assert detail["PublicAccessBlock"] is None
    assert detail["PublicAcl"] is True
    assert detail["ObjectKeys"] == ["index.html"]
    assert detail["WebsiteHosting"] is False
    s3.get_bucket_policy.assert_called_once_with(Bucket="assets")


def test_bucket_without_policy():
    source, s3 = make_source()
    s3.get_bucket_policy.side_effect = client_error("NoSuchBucketPolicy")
    s3.get_public_access_block.return_value = {"PublicAccessBlockConfiguration": {"BlockPublicAcls": True}}
    s3.get_bucket_acl.return_value = {"Grants": []}
    s3.list_objects_v2.return_value = {}
    s3.get_bucket_website.side_effect = client_error("NoSuchWebsiteConfiguration")
    detail = source.get_origin_detail(BUCKET)
    assert detail["BucketPolicy"] is None
    assert detail["ObjectKeys"] == []


def test_bucket_access_denied_propagates_as_permission_error():
    source, s3 = make_source()
    s3.get_bucket_policy.side_effect = client_error("AccessDenied", "GetBucketPolicy")
    with pytest.raises(PermissionDeniedError):
        source.get_origin_detail(BUCKET)


def test_load_balancer_health():
    source, elbv2 = make_source()
    paginator = MagicMock()
    paginator.paginate.return_value = [{"LoadBalancers": [
        {"DNSName": "my-alb-1.us-east-1.elb.amazonaws.com", "State": {"Code": "failed"}},
    ]}]
    elbv2.get_paginator.return_value = paginator
    alb = OriginConfig(
        origin_id="alb", kind=OriginKind.LOAD_BALANCER, domain="dualstack.my-alb-1.us-east-1.elb.amazonaws.com",
    )
    assert source.get_origin_detail(alb)["Healthy"] is False


# ── Security / logging ──────────────────────────────────────────────


def test_summarize_web_acl():
    acl = {
        "Name": "edge",
        "DefaultAction": {"Block": {}},
        "Rules": [
            {"Name": "block-admin", "Action": {"Block": {}}, "Statement": {"ByteMatchStatement": {
                "SearchString": b"/admin", "FieldToMatch": {"UriPath": {}},
                "PositionalConstraint": "STARTS_WITH",
            }}},
            {"Name": "allow-get", "Action": {"Allow": {}}, "Statement": {"ByteMatchStatement": {
                "SearchString": b"get", "FieldToMatch": {"Method": {}}, "PositionalConstraint": "EXACTLY",
            }}},
            {"Name": "AWSManagedRulesCommonRuleSet", "OverrideAction": {"None": {}}, "Statement": {}},
        ],
    }
    summary = summarize_web_acl(acl)
    assert summary["DefaultAction"] == "BLOCK"
    block, allow, managed = summary["Rules"]
    assert block == {"Name": "block-admin", "Action": "BLOCK", "PathPatterns": ["/admin*"], "Methods": []}
    assert allow["Methods"] == ["GET"]
    assert managed["Action"] == "BLOCK"


def test_security_detail_uses_wafv2_in_us_east_1():
    source, wafv2 = make_source()
    wafv2.get_web_acl.return_value = {"WebACL": {"Name": "edge", "DefaultAction": {"Allow": {}}}}
    arn = "arn:aws:wafv2:us-east-1:123456789012:global/webacl/edge/abc123"
    assert source.get_security_detail(arn)["Name"] == "edge"
    wafv2.get_web_acl.assert_called_once_with(Name="edge", Scope="CLOUDFRONT", Id="abc123")
    source.session.client.assert_called_with("wafv2", region_name="us-east-1")


def test_logging_detail_without_subscription():
    source, cloudfront = make_source()
    cloudfront.get_monitoring_subscription.side_effect = client_error("NoSuchMonitoringSubscription")
    assert source.get_logging_detail("E1ABCDEF") == {"AdditionalMetrics": False}


# ── Probes ──────────────────────────────────────────────────────────


API = OriginConfig(
    origin_id="api", kind=OriginKind.CUSTOM_HTTP, domain="api.example.com",
    protocol=OriginProtocol.HTTPS_ONLY,
)


@patch("cdndoctor.sources.aws.requests.head")
def test_probe_reachable(mock_head):
    mock_head.return_value = MagicMock(status_code=403)
    source, _ = make_source()
    assert source.probe_reachability(API, 2.0) == ProbeOutcome.REACHABLE
    mock_head.assert_called_once_with("https://api.example.com/", timeout=2.0, allow_redirects=False)


@patch("cdndoctor.sources.aws.requests.head")
def test_probe_outcomes(mock_head):
    source, _ = make_source()
    mock_head.side_effect = requests.exceptions.ConnectTimeout()
    assert source.probe_reachability(API, 2.0) == ProbeOutcome.TIMEOUT
    mock_head.side_effect = requests.exceptions.ConnectionError()
    assert source.probe_reachability(API, 2.0) == ProbeOutcome.UNREACHABLE
    mock_head.side_effect = requests.exceptions.InvalidURL()
    with pytest.raises(ValidationProbeError):
        source.probe_reachability(API, 2.0)
