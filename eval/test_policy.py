"""Tests for bucket-policy analysis."""
import json

from cdndoctor.policy import grants_list_bucket, grants_read, summarize_bucket_policy

DIST_ARN = "arn:aws:cloudfront::123456789012:distribution/E1ABCDEF"


# ── Helpers ─────────────────────────────────────────────────────────


def policy(*statements):
    return json.dumps({"Version": "2012-10-17", "Statement": list(statements)})


def oac_statement(source_arn=DIST_ARN, actions=("s3:GetObject",)):
    stmt = {
        "Effect": "Allow",
        "Principal": {"Service": "cloudfront.amazonaws.com"},
        "Action": list(actions),
        "Resource": "arn:aws:s3:::assets/*",
    }
    if source_arn is not None:
        stmt["Condition"] = {"StringEquals": {"AWS:SourceArn": source_arn}}
    return stmt


# ── Tests ───────────────────────────────────────────────────────────


def test_no_policy():
    summary = summarize_bucket_policy(None, DIST_ARN)
    assert not summary.has_policy
    assert not summary.public_read
    assert not grants_read(summary)


def test_public_read_principal_star():
    summary = summarize_bucket_policy(policy({
        "Effect": "Allow", "Principal": "*", "Action": "s3:GetObject",
        "Resource": "arn:aws:s3:::assets/*",
    }))
    assert summary.public_read


def test_public_statement_with_condition_is_not_public_read():
    """A condition (e.g. source IP) narrows Principal '*'."""
    summary = summarize_bucket_policy(policy({
        "Effect": "Allow", "Principal": {"AWS": "*"}, "Action": "s3:GetObject",
        "Condition": {"IpAddress": {"aws:SourceIp": "10.0.0.0/8"}},
    }))
    assert not summary.public_read


def test_oac_statement_trusts_matching_distribution():
    summary = summarize_bucket_policy(policy(oac_statement()), DIST_ARN)
    assert summary.trusts_distribution
    assert grants_read(summary)
    assert not grants_list_bucket(summary)


def test_oac_statement_for_other_distribution_not_trusted():
    other = "arn:aws:cloudfront::123456789012:distribution/EOTHER"
    summary = summarize_bucket_policy(policy(oac_statement(source_arn=other)), DIST_ARN)
    assert not summary.trusts_distribution
    assert not grants_read(summary)


def test_oac_statement_without_condition_trusts_all_distributions():
    summary = summarize_bucket_policy(policy(oac_statement(source_arn=None)), DIST_ARN)
    assert summary.trusts_distribution


def test_wildcard_source_arn():
    wildcard = "arn:aws:cloudfront::123456789012:distribution/*"
    summary = summarize_bucket_policy(policy(oac_statement(source_arn=wildcard)), DIST_ARN)
    assert summary.trusts_distribution


def test_list_bucket_granted():
    stmt = oac_statement(actions=("s3:GetObject", "s3:ListBucket"))
    assert grants_list_bucket(summarize_bucket_policy(policy(stmt), DIST_ARN))


def test_origin_access_identity_principal():
    summary = summarize_bucket_policy(policy({
        "Effect": "Allow",
        "Principal": {"AWS": "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity E2OAI"},
        "Action": "s3:GetObject",
    }))
    assert summary.trusted_identities == ("E2OAI",)
    assert grants_read(summary)


def test_deny_statements_ignored():
    summary = summarize_bucket_policy(policy({
        "Effect": "Deny", "Principal": "*", "Action": "s3:GetObject",
    }))
    assert summary.has_policy
    assert not summary.public_read


def test_invalid_json_grants_nothing():
    summary = summarize_bucket_policy("{not json", DIST_ARN)
    assert summary.has_policy
    assert not summary.trusts_distribution
    assert not summary.public_read


def test_dict_policy_accepted():
    summary = summarize_bucket_policy({"Statement": oac_statement()}, DIST_ARN)
    assert summary.trusts_distribution
