"""
Recommendation Classifier

Maps the detection verdicts and final scores of a run to remediation
advice.  Rules are independent: every one that applies is emitted, in a
fixed order.  An empty list means the setup is effective on every layer.
"""

from __future__ import annotations

from .types import (BlocklistSuggestion, DetectionResult, Layer,
                    RecSeverity, Recommendation, Scores)

LOW_SCORE_THRESHOLD = 70

_LAYER_ADVICE: dict[Layer, tuple[str, str, str]] = {
    Layer.DNS: (
        "Low DNS score",
        "Your DNS filtering scored {score}/100. Consider adding more "
        "blocklists or regex blocking rules.",
        "Recommended lists:\n"
        "- OISD Big: https://big.oisd.nl/\n"
        "- Hagezi Pro: https://github.com/hagezi/dns-blocklists\n"
        "- 1Hosts Pro: https://o0.pages.dev/Pro/hosts.txt",
    ),
    Layer.BROWSER: (
        "Low browser score",
        "Your browser filtering scored {score}/100. Check your extensions "
        "and their filter settings.",
        "- Install uBlock Origin\n"
        "- Enable the additional lists (Annoyances, Privacy)\n"
        "- Add custom filters for what still gets through",
    ),
    Layer.CNAME: (
        "Vulnerable to CNAME cloaking",
        "CNAME protection scored {score}/100. CNAME cloaking disguises "
        "trackers as first-party subdomains. Pi-hole v6+ inspects CNAME "
        "chains natively.",
        "Pi-hole v6+:\n"
        "pihole -up\n"
        "enable: Settings → DNS → CNAME Deep Inspection",
    ),
    Layer.ADVANCED: (
        "Advanced tracking gets through",
        "Advanced tracking protection scored {score}/100. Fingerprinting "
        "and storage-based tracking are not being stopped.",
        "- Firefox: about:config → privacy.resistFingerprinting = true\n"
        "- Brave: Shields → Fingerprinting = Block\n"
        "- Extensions: CanvasBlocker, Chameleon",
    ),
}


def recommend(detection: DetectionResult, scores: Scores) -> list[Recommendation]:
    recs: list[Recommendation] = []

    if not detection.dns_filtering_active:
        recs.append(Recommendation(
            severity=RecSeverity.CRITICAL,
            title="No DNS filtering detected",
            description=(
                "DNS-level blocking (Pi-hole, AdGuard Home, NextDNS) protects "
                "every device on your network. Installing a DNS filter is "
                "strongly recommended."
            ),
            remediation=(
                "Pi-hole: curl -sSL https://install.pi-hole.net | bash\n"
                "AdGuard Home: https://github.com/AdguardTeam/AdGuardHome"
            ),
            layer=Layer.DNS,
        ))

    if not detection.browser_adblock_active:
        recs.append(Recommendation(
            severity=RecSeverity.CRITICAL,
            title="No browser ad blocker detected",
            description=(
                "Browser extensions such as uBlock Origin block elements that "
                "slip past DNS filtering."
            ),
            remediation=(
                "uBlock Origin:\n"
                "Chrome: https://chrome.google.com/webstore/detail/"
                "cjpalhdlnbpafiamejdnhcphjbkeiagm\n"
                "Firefox: https://addons.mozilla.org/firefox/addon/ublock-origin/"
            ),
            layer=Layer.BROWSER,
        ))

    for layer in Layer:
        score = scores.for_layer(layer)
        if score >= LOW_SCORE_THRESHOLD:
            continue
        title, description, remediation = _LAYER_ADVICE[layer]
        recs.append(Recommendation(
            severity=RecSeverity.WARNING,
            title=title,
            description=description.format(score=score),
            remediation=remediation,
            layer=layer,
        ))

    return recs


def suggest_blocklists(scores: Scores) -> list[BlocklistSuggestion]:
    """Blocklists worth adding, given where the run fell short."""
    candidates = [
        (BlocklistSuggestion(
            "OISD Big List",
            "Comprehensive list with 1M+ domains. Improves the DNS score.",
            "https://big.oisd.nl/"),
         scores.dns < 80),
        (BlocklistSuggestion(
            "Hagezi Pro++",
            "Privacy and advanced tracking focus. Improves CNAME protection.",
            "https://github.com/hagezi/dns-blocklists"),
         scores.cname < 80),
        (BlocklistSuggestion(
            "1Hosts Pro",
            "Tuned for aggressive ad and tracker blocking.",
            "https://o0.pages.dev/Pro/hosts.txt"),
         scores.dns < 70),
        (BlocklistSuggestion(
            "Steven Black Unified",
            "A balanced merge of several quality lists.",
            "https://raw.githubusercontent.com/StevenBlack/hosts/master/hosts"),
         True),
        (BlocklistSuggestion(
            "AdGuard DNS Filter",
            "Actively maintained by AdGuard, updated frequently.",
            "https://adguardteam.github.io/AdGuardSDNSFilter/Filters/filter.txt"),
         True),
        (BlocklistSuggestion(
            "EasyPrivacy",
            "Anti-tracking focus, complements ad blocklists well.",
            "https://easylist.to/easylist/easyprivacy.txt"),
         scores.advanced < 70),
    ]
    return [bl for bl, relevant in candidates if relevant]
