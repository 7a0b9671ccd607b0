# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Built-in two-label public suffixes.

Not a public suffix list: only the common second-level registries for which
``example.co.uk`` must group as ``example.co.uk`` rather than ``co.uk``.
"""

from __future__ import annotations

MULTIPART_SUFFIXES: frozenset[str] = frozenset(
    {
        # United Kingdom
        "co.uk",
        "org.uk",
        "ac.uk",
        "gov.uk",
        "me.uk",
        "ltd.uk",
        "plc.uk",
        "net.uk",
        "sch.uk",
        # Australia / New Zealand
        "com.au",
        "net.au",
        "org.au",
        "edu.au",
        "gov.au",
        "co.nz",
        "org.nz",
        "net.nz",
        "govt.nz",
        "ac.nz",
        # Asia
        "co.jp",
        "ne.jp",
        "or.jp",
        "ac.jp",
        "go.jp",
        "co.kr",
        "or.kr",
        "ac.kr",
        "go.kr",
        "com.cn",
        "net.cn",
        "org.cn",
        "gov.cn",
        "edu.cn",
        "com.hk",
        "org.hk",
        "com.tw",
        "org.tw",
        "com.sg",
        "edu.sg",
        "gov.sg",
        "co.in",
        "net.in",
        "org.in",
        "ac.in",
        "gov.in",
        "co.id",
        "or.id",
        "ac.id",
        "co.th",
        "ac.th",
        "in.th",
        "com.my",
        "com.ph",
        "com.vn",
        "com.pk",
        "co.il",
        "org.il",
        "ac.il",
        "gov.il",
        # Americas
        "com.br",
        "net.br",
        "org.br",
        "gov.br",
        "com.ar",
        "com.mx",
        "org.mx",
        "gob.mx",
        "com.co",
        "com.pe",
        "com.ve",
        "com.uy",
        "co.ve",
        # Europe / Middle East / Africa
        "com.tr",
        "org.tr",
        "gov.tr",
        "com.ua",
        "org.ua",
        "co.za",
        "org.za",
        "gov.za",
        "ac.za",
        "com.eg",
        "com.sa",
        "com.ng",
        "co.ke",
        "com.pl",
        "com.gr",
        "com.cy",
        "com.mt",
    }
)
