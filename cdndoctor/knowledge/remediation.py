"""Remediation table keyed by rule id.

Each template is advisory: commands are AWS CLI text with {placeholders}
filled from the run context and finding. Nothing here is ever executed.
Templates whose ``alters`` is non-empty must carry side effects.
"""
from __future__ import annotations

ALTERS_ACCESS_POLICY = "access-policy"
ALTERS_CACHE_INVALIDATION = "cache-invalidation"
ALTERS_PROTOCOL = "protocol"

VALID_ALTERS = {ALTERS_ACCESS_POLICY, ALTERS_CACHE_INVALIDATION, ALTERS_PROTOCOL}

_GET_CONFIG = (
    "aws cloudfront get-distribution-config --id {distribution_id} "
    "--query DistributionConfig > dist-config.json"
)
_UPDATE_CONFIG = (
    "aws cloudfront update-distribution --id {distribution_id} "
    "--distribution-config file://dist-config.json --if-match <etag>"
)
_WAIT_DEPLOYED = "aws cloudfront wait distribution-deployed --id {distribution_id}"
_INVALIDATE_ALL = (
    "aws cloudfront create-invalidation --distribution-id {distribution_id} --paths '/*'"
)

REMEDIATIONS: dict[str, list[dict]] = {
    "CDN-AD01": [
        {
            "tier": "quick-fix",
            "title": "Create an origin access control and trust it in the bucket policy",
            "estimated_time": "~5 min",
            "explanation": (
                "An origin access control makes CloudFront sign its requests to the bucket. "
                "The bucket policy then allows s3:GetObject only for this distribution."
            ),
            "declarative_steps": [
                "CloudFront console > Origin access > Create control setting (S3, sign requests)",
                "Distribution {distribution_id} > Origins > {origin_id} > Origin access control settings: select the new control",
                "Copy the generated bucket policy and paste it into bucket {bucket} > Permissions > Bucket policy",
            ],
            "imperative_commands": [
                "aws cloudfront create-origin-access-control --origin-access-control-config "
                "Name={bucket}-oac,SigningProtocol=sigv4,SigningBehavior=always,OriginAccessControlOriginType=s3",
                _GET_CONFIG,
                "# set Origins.Items[Id={origin_id}].OriginAccessControlId to the new control id",
                _UPDATE_CONFIG,
                "aws s3api put-bucket-policy --bucket {bucket} --policy '{{\"Version\":\"2012-10-17\","
                "\"Statement\":[{{\"Effect\":\"Allow\",\"Principal\":{{\"Service\":\"cloudfront.amazonaws.com\"}},"
                "\"Action\":\"s3:GetObject\",\"Resource\":\"arn:aws:s3:::{bucket}/*\","
                "\"Condition\":{{\"StringEquals\":{{\"AWS:SourceArn\":\"{distribution_arn}\"}}}}}}]}}'",
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI https://{distribution_domain}/{request_key} | head -1   # expect 200",
            ],
            "side_effects": [
                "Replacing the bucket policy removes any statements it held before; merge them first.",
                "Direct access to the bucket stops working once public grants are removed.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
        {
            "tier": "advanced",
            "title": "Block all public access on the bucket",
            "estimated_time": "~2 min",
            "explanation": "Once CloudFront is the only reader, block public access so the bucket cannot be exposed again.",
            "declarative_steps": [
                "S3 console > {bucket} > Permissions > Block public access: enable all four settings",
            ],
            "imperative_commands": [
                "aws s3api put-public-access-block --bucket {bucket} --public-access-block-configuration "
                "BlockPublicAcls=true,IgnorePublicAcls=true,BlockPublicPolicy=true,RestrictPublicBuckets=true",
            ],
            "verification_steps": [
                "aws s3api get-public-access-block --bucket {bucket}",
            ],
            "side_effects": [
                "Any client that reads the bucket directly over its public URL starts receiving 403.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-AD02": [
        {
            "tier": "quick-fix",
            "title": "Grant the distribution read access in the bucket policy",
            "estimated_time": "~3 min",
            "explanation": (
                "The origin signs requests with its access control, but the bucket policy has "
                "no statement allowing them. Add one scoped to this distribution."
            ),
            "declarative_steps": [
                "Distribution {distribution_id} > Origins > {origin_id} > Edit > Copy policy",
                "S3 console > {bucket} > Permissions > Bucket policy: add the copied statement",
            ],
            "imperative_commands": [
                "aws s3api get-bucket-policy --bucket {bucket} --query Policy --output text > policy.json",
                "# add an Allow statement: Principal Service cloudfront.amazonaws.com, Action s3:GetObject, "
                "Resource arn:aws:s3:::{bucket}/*, Condition StringEquals AWS:SourceArn {distribution_arn}",
                "aws s3api put-bucket-policy --bucket {bucket} --policy file://policy.json",
            ],
            "verification_steps": [
                "aws s3api get-bucket-policy --bucket {bucket} --query Policy --output text",
                "curl -sI https://{distribution_domain}/{request_key} | head -1   # expect 200",
            ],
            "side_effects": [
                "A malformed policy document is rejected; an over-broad one can expose the bucket.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-AD03": [
        {
            "tier": "quick-fix",
            "title": "Allow the viewer's country in the geo restriction",
            "estimated_time": "~2 min",
            "explanation": "Add {viewer_country} to the allow list (or remove it from the deny list).",
            "declarative_steps": [
                "Distribution {distribution_id} > Security > CloudFront geographic restrictions > Edit",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# edit Restrictions.GeoRestriction.Items and Quantity",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "aws cloudfront get-distribution-config --id {distribution_id} "
                "--query DistributionConfig.Restrictions.GeoRestriction",
            ],
            "side_effects": [
                "Content becomes available in the newly permitted country, which may have licensing implications.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-AD04": [
        {
            "tier": "standard",
            "title": "Identify the blocking WAF rule from sampled requests",
            "estimated_time": "~10 min",
            "explanation": (
                "Sampled requests show which rule terminated the request. Switch that rule to "
                "Count or add a scoped exception instead of disabling the web ACL."
            ),
            "declarative_steps": [
                "WAF console > Web ACLs (Global) > {web_acl_name} > Overview > Sampled requests",
                "Filter by action BLOCK and URI {request_path}",
                "Edit the matching rule: override its action to Count or add a scope-down statement",
            ],
            "imperative_commands": [
                "aws wafv2 get-sampled-requests --scope CLOUDFRONT --region us-east-1 "
                "--web-acl-arn {web_acl_id} --rule-metric-name <rule-metric> "
                "--time-window StartTime=<start>,EndTime=<end> --max-items 100",
                "aws wafv2 get-web-acl --scope CLOUDFRONT --region us-east-1 --id <acl-id> --name {web_acl_name}",
            ],
            "verification_steps": [
                "curl -sI -X {request_method} https://{request_domain}{request_path} | head -1",
            ],
            "side_effects": [
                "Relaxing a WAF rule lets through traffic it was designed to stop.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-AD05": [
        {
            "tier": "standard",
            "title": "Request the content with a signed URL or signed cookie",
            "estimated_time": "~5 min",
            "explanation": "The behavior only serves signed requests; generate one with a key from its trusted key group.",
            "declarative_steps": [
                "Confirm the client generates signed URLs for {behavior_pattern}",
                "If the content should be public, remove the trusted key groups from the behavior",
            ],
            "imperative_commands": [
                "aws cloudfront sign --url https://{distribution_domain}{request_path} "
                "--key-pair-id <public-key-id> --private-key file://private_key.pem "
                "--date-less-than <expiry>",
            ],
            "verification_steps": [
                "curl -sI '<signed-url>' | head -1   # expect 200",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-AD06": [
        {
            "tier": "quick-fix",
            "title": "Add the request domain as an alternate domain name",
            "estimated_time": "~10 min",
            "explanation": (
                "CloudFront only answers for its own domain and configured aliases. Add "
                "{request_domain} together with a certificate that covers it."
            ),
            "declarative_steps": [
                "Distribution {distribution_id} > General > Settings > Edit > Add item under Alternate domain name",
                "Select an ACM certificate (us-east-1) covering {request_domain}",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# append {request_domain} to Aliases.Items and set ViewerCertificate.ACMCertificateArn",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "dig +short {request_domain}   # expect the distribution domain",
                "curl -sI https://{request_domain}/ | head -1",
            ],
            "side_effects": [
                "The certificate must cover the new name or the update is rejected.",
            ],
            "alters": [ALTERS_PROTOCOL],
        },
    ],
    "CDN-AD07": [
        {
            "tier": "standard",
            "title": "Confirm the object exists, optionally allow s3:ListBucket",
            "estimated_time": "~3 min",
            "explanation": (
                "Without s3:ListBucket the bucket reports missing keys as 403. Granting it makes "
                "missing objects return 404, which is easier to diagnose."
            ),
            "declarative_steps": [
                "S3 console > {bucket}: check that {request_key} exists",
                "Optionally add s3:ListBucket on arn:aws:s3:::{bucket} to the CloudFront statement",
            ],
            "imperative_commands": [
                "aws s3api head-object --bucket {bucket} --key {request_key}",
            ],
            "verification_steps": [
                "curl -sI https://{distribution_domain}/{request_key} | head -1   # 404 when absent",
            ],
            "side_effects": [
                "Granting s3:ListBucket lets the distribution reveal which keys exist.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-NF01": [
        {
            "tier": "quick-fix",
            "title": "Set the default root object",
            "estimated_time": "~2 min",
            "explanation": "Map requests for '/' to an index object such as index.html.",
            "declarative_steps": [
                "Distribution {distribution_id} > General > Settings > Edit > Default root object: index.html",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set DefaultRootObject to \"index.html\"",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI https://{distribution_domain}/ | head -1   # expect 200",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-NF02": [
        {
            "tier": "quick-fix",
            "title": "Add a cache behavior that matches the path, or rely on the default",
            "estimated_time": "~5 min",
            "explanation": (
                "{request_path} is served by the default behavior. Add a path pattern routing it "
                "to the origin that holds it, or place the object on the default origin."
            ),
            "declarative_steps": [
                "Distribution {distribution_id} > Behaviors > Create behavior: path pattern covering {request_path}",
                "Alternatively upload the object to the default behavior's origin",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# append a CacheBehaviors.Items entry with PathPattern matching {request_path}",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI https://{distribution_domain}{request_path} | head -1",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-NF03": [
        {
            "tier": "quick-fix",
            "title": "Align the origin path with where objects are stored",
            "estimated_time": "~3 min",
            "explanation": "CloudFront prepends the origin path to every key; it must match the bucket layout.",
            "declarative_steps": [
                "Distribution {distribution_id} > Origins > {origin_id} > Edit > Origin path",
            ],
            "imperative_commands": [
                "aws s3 ls s3://{bucket}/ --recursive | head -20",
                _GET_CONFIG,
                "# set Origins.Items[Id={origin_id}].OriginPath to the prefix holding the objects",
                _UPDATE_CONFIG,
                _INVALIDATE_ALL,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI https://{distribution_domain}{request_path} | head -1",
            ],
            "side_effects": [
                "Cached 404 responses persist until they expire or are invalidated.",
            ],
            "alters": [ALTERS_CACHE_INVALIDATION],
        },
    ],
    "CDN-SE01": [
        {
            "tier": "quick-fix",
            "title": "Raise the origin read timeout",
            "estimated_time": "~3 min",
            "explanation": (
                "Raise the origin response timeout to at least the backend's slowest expected "
                "response (up to 60 s without a quota increase)."
            ),
            "declarative_steps": [
                "Distribution {distribution_id} > Origins > {origin_id} > Edit > Response timeout: 60",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set Origins.Items[Id={origin_id}].CustomOriginConfig.OriginReadTimeout to 60",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "aws cloudfront get-distribution-config --id {distribution_id} "
                "--query 'DistributionConfig.Origins.Items[].CustomOriginConfig.OriginReadTimeout'",
            ],
            "side_effects": [],
            "alters": [],
        },
        {
            "tier": "advanced",
            "title": "Reduce backend latency",
            "estimated_time": "~1 h",
            "explanation": "Long-running requests should be made asynchronous or cached closer to the origin.",
            "declarative_steps": [
                "Profile slow endpoints and move long work off the request path",
                "Enable Origin Shield to reduce load on the backend",
            ],
            "imperative_commands": [
                "aws cloudwatch get-metric-statistics --namespace AWS/CloudFront --metric-name OriginLatency "
                "--dimensions Name=DistributionId,Value={distribution_id} Name=Region,Value=Global "
                "--statistics Average --period 300 --start-time <start> --end-time <end> --region us-east-1",
            ],
            "verification_steps": [
                "Re-check OriginLatency p95 stays below the configured read timeout",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-SE02": [
        {
            "tier": "quick-fix",
            "title": "Restore the origin to a healthy state",
            "estimated_time": "~15 min",
            "explanation": "CloudFront cannot recover an unhealthy backend; fix the origin first.",
            "declarative_steps": [
                "Check the load balancer's target group health and the backend service logs",
            ],
            "imperative_commands": [
                "aws elbv2 describe-load-balancers --query \"LoadBalancers[?DNSName=='{origin_domain}']\"",
                "aws elbv2 describe-target-health --target-group-arn <target-group-arn>",
            ],
            "verification_steps": [
                "curl -sI https://{origin_domain}/ | head -1",
            ],
            "side_effects": [],
            "alters": [],
        },
        {
            "tier": "advanced",
            "title": "Add origin failover",
            "estimated_time": "~30 min",
            "explanation": "An origin group retries a secondary origin when the primary returns 5xx.",
            "declarative_steps": [
                "Distribution {distribution_id} > Origins > Create origin group with a secondary origin",
                "Point the affected behaviors at the origin group",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# add OriginGroups.Items with FailoverCriteria StatusCodes 500,502,503,504",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [_WAIT_DEPLOYED],
            "side_effects": [
                "Requests may be served from the secondary origin, which must hold the same content.",
            ],
            "alters": [ALTERS_CACHE_INVALIDATION],
        },
    ],
    "CDN-SE03": [
        {
            "tier": "quick-fix",
            "title": "Connect to the origin over HTTP only",
            "estimated_time": "~3 min",
            "explanation": (
                "The origin does not serve HTTPS (S3 website endpoints never do). Set the origin "
                "protocol policy to http-only."
            ),
            "declarative_steps": [
                "Distribution {distribution_id} > Origins > {origin_id} > Edit > Protocol: HTTP only",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set Origins.Items[Id={origin_id}].CustomOriginConfig.OriginProtocolPolicy to http-only",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI https://{distribution_domain}/ | head -1",
            ],
            "side_effects": [
                "Traffic between CloudFront and the origin is no longer encrypted.",
            ],
            "alters": [ALTERS_PROTOCOL],
        },
        {
            "tier": "advanced",
            "title": "Serve the origin over HTTPS",
            "estimated_time": "~30 min",
            "explanation": "Use the bucket's REST endpoint with an access control, or install a certificate on the origin.",
            "declarative_steps": [
                "Replace the website endpoint with the REST endpoint {bucket}.s3.{region}.amazonaws.com",
                "Add an origin access control (see CDN-AD01)",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# replace Origins.Items[Id={origin_id}].DomainName and use S3OriginConfig",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [_WAIT_DEPLOYED],
            "side_effects": [
                "Website features (index documents per folder, redirects) are not available on the REST endpoint.",
            ],
            "alters": [ALTERS_PROTOCOL, ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-SE04": [
        {
            "tier": "quick-fix",
            "title": "Restore network reachability to the origin",
            "estimated_time": "~15 min",
            "explanation": "Check DNS, security groups and that the origin listens on the configured port.",
            "declarative_steps": [
                "Confirm {origin_domain} resolves and its security group allows CloudFront's managed prefix list",
            ],
            "imperative_commands": [
                "dig +short {origin_domain}",
                "curl -sv --max-time 5 https://{origin_domain}/ -o /dev/null",
            ],
            "verification_steps": [
                "curl -sI https://{origin_domain}/ | head -1",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-GN01": [
        {
            "tier": "standard",
            "title": "Remove public access from the origin",
            "estimated_time": "~5 min",
            "explanation": "Serve content only through the distribution: remove public grants and rely on an access control.",
            "declarative_steps": [
                "S3 console > {bucket} > Permissions: remove Principal '*' statements and public ACL grants",
                "Enable Block public access",
            ],
            "imperative_commands": [
                "aws s3api put-public-access-block --bucket {bucket} --public-access-block-configuration "
                "BlockPublicAcls=true,IgnorePublicAcls=true,BlockPublicPolicy=true,RestrictPublicBuckets=true",
            ],
            "verification_steps": [
                "curl -sI https://{bucket}.s3.amazonaws.com/ | head -1   # expect 403",
            ],
            "side_effects": [
                "Without an origin access control in place first, the distribution itself starts receiving 403.",
            ],
            "alters": [ALTERS_ACCESS_POLICY],
        },
    ],
    "CDN-GN02": [
        {
            "tier": "quick-fix",
            "title": "Redirect HTTP viewers to HTTPS",
            "estimated_time": "~2 min",
            "explanation": "Set the viewer protocol policy to redirect-to-https.",
            "declarative_steps": [
                "Distribution {distribution_id} > Behaviors > {behavior_pattern} > Edit > Viewer protocol policy: Redirect HTTP to HTTPS",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set ViewerProtocolPolicy to redirect-to-https on the affected behaviors",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                _WAIT_DEPLOYED,
                "curl -sI http://{distribution_domain}/ | head -1   # expect 301",
            ],
            "side_effects": [
                "Clients that cannot follow redirects or speak TLS lose access.",
            ],
            "alters": [ALTERS_PROTOCOL],
        },
    ],
    "CDN-GN03": [
        {
            "tier": "quick-fix",
            "title": "Enable automatic compression",
            "estimated_time": "~2 min",
            "explanation": "CloudFront compresses text content when the viewer accepts gzip or brotli.",
            "declarative_steps": [
                "Distribution {distribution_id} > Behaviors > Edit > Compress objects automatically: Yes",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set Compress to true on the affected behaviors",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                "curl -sI -H 'Accept-Encoding: gzip' https://{distribution_domain}/ | grep -i content-encoding",
            ],
            "side_effects": [
                "Objects already cached uncompressed stay so until they expire or are invalidated.",
            ],
            "alters": [ALTERS_CACHE_INVALIDATION],
        },
    ],
    "CDN-GN04": [
        {
            "tier": "standard",
            "title": "Forward only the values the origin needs",
            "estimated_time": "~15 min",
            "explanation": "Replace 'all' forwarding with an allow list, ideally through a cache policy and origin request policy.",
            "declarative_steps": [
                "Distribution {distribution_id} > Behaviors > {behavior_pattern} > Edit > Cache key and origin requests",
                "Use the CachingOptimized cache policy and an origin request policy listing required headers",
            ],
            "imperative_commands": [
                "aws cloudfront list-cache-policies --type managed",
                _GET_CONFIG,
                "# set CachePolicyId / OriginRequestPolicyId and remove ForwardedValues",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                "Check CacheHitRate for the distribution in CloudWatch after a day of traffic",
            ],
            "side_effects": [
                "An origin that relies on a dropped header or cookie changes behavior.",
                "The cache key changes, so the existing cache is effectively cold.",
            ],
            "alters": [ALTERS_CACHE_INVALIDATION],
        },
    ],
    "CDN-GN05": [
        {
            "tier": "quick-fix",
            "title": "Require TLSv1.2 for viewers",
            "estimated_time": "~2 min",
            "explanation": "Set the security policy to TLSv1.2_2021.",
            "declarative_steps": [
                "Distribution {distribution_id} > General > Settings > Edit > Security policy: TLSv1.2_2021",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set ViewerCertificate.MinimumProtocolVersion to TLSv1.2_2021",
                _UPDATE_CONFIG,
            ],
            "verification_steps": [
                "openssl s_client -connect {distribution_domain}:443 -tls1_1 </dev/null   # expect handshake failure",
            ],
            "side_effects": [
                "Legacy clients without TLSv1.2 support can no longer connect.",
            ],
            "alters": [ALTERS_PROTOCOL],
        },
    ],
    "CDN-GN06": [
        {
            "tier": "quick-fix",
            "title": "Enable the distribution or wait for deployment",
            "estimated_time": "~10 min",
            "explanation": "A disabled distribution serves nothing; an in-progress one finishes on its own.",
            "declarative_steps": [
                "Distribution {distribution_id} > General > Enable (if disabled)",
            ],
            "imperative_commands": [
                _GET_CONFIG,
                "# set Enabled to true",
                _UPDATE_CONFIG,
                _WAIT_DEPLOYED,
            ],
            "verification_steps": [
                "aws cloudfront get-distribution --id {distribution_id} --query 'Distribution.Status'",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-UV01": [
        {
            "tier": "standard",
            "title": "Grant read access to origin detail",
            "estimated_time": "~5 min",
            "explanation": "Re-run with credentials allowing s3:GetBucketPolicy, s3:GetBucketAcl, s3:ListBucket and elasticloadbalancing:Describe*.",
            "declarative_steps": [
                "Attach a read-only policy for the origin resources to the diagnosing principal",
            ],
            "imperative_commands": [
                "aws s3api get-bucket-policy --bucket {bucket}",
                "aws sts get-caller-identity",
            ],
            "verification_steps": [
                "cdndoctor diagnose {distribution_id}",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-UV02": [
        {
            "tier": "standard",
            "title": "Grant read access to the web ACL",
            "estimated_time": "~5 min",
            "explanation": "Re-run with credentials allowing wafv2:GetWebACL in us-east-1.",
            "declarative_steps": [
                "Attach a read-only WAF policy to the diagnosing principal",
            ],
            "imperative_commands": [
                "aws wafv2 list-web-acls --scope CLOUDFRONT --region us-east-1",
            ],
            "verification_steps": [
                "cdndoctor diagnose {distribution_id}",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
    "CDN-UV03": [
        {
            "tier": "standard",
            "title": "Grant read access to monitoring settings",
            "estimated_time": "~5 min",
            "explanation": "Re-run with credentials allowing cloudfront:GetMonitoringSubscription.",
            "declarative_steps": [
                "Attach cloudfront:GetMonitoringSubscription to the diagnosing principal",
            ],
            "imperative_commands": [
                "aws cloudfront get-monitoring-subscription --distribution-id {distribution_id}",
            ],
            "verification_steps": [
                "cdndoctor diagnose {distribution_id}",
            ],
            "side_effects": [],
            "alters": [],
        },
    ],
}


def get_templates(rule_id: str) -> list[dict]:
    """Templates for *rule_id*, or [] when the rule has no remediation entry."""
    return REMEDIATIONS.get(rule_id, [])
