"""Prompt templates for the classification pipeline."""

CLASSIFY_SYSTEM = (
    "You are a financial research analyst who reads investment blog posts "
    "about listed Indian companies. You answer with JSON only."
)

CLASSIFY_PROMPT = """Classify the blog post below.

Labels (pick exactly one):
- Company_analysis: a deep dive on ONE listed company with forward-looking
  thesis reasoning (business quality, valuation, triggers, risks). Needs more
  than {min_words} words. Plain results reporting is not analysis.
- Sector_analysis: analysis of an industry or theme and the companies in it.
- Multiple_company_analysis: analysis of several companies, at least
  {words_per_company} words on each.
- Multiple_company_update: short updates, news or results on several companies.
- General_investment_guide: education, strategy or market commentary that is
  not about specific companies.
- Other: anything else. When unsure, choose Other.

Rules:
- Only use the main article body. Ignore "Related posts", "Also read",
  "You may like", navigation, sidebars, comments and footers. Companies that
  appear only there must NOT be listed.
- List companies exactly as they are named in the article body.
- The summary is 1-2 sentences stating the thesis.

Title: {title}
Word count: {word_count}

Article:
{content}

Respond with JSON:
{{"classification": "<label>", "summary": "<thesis>", "companies": ["<name>", ...]}}"""

EXTRACT_SYSTEM = (
    "You identify which listed companies a financial blog post is about. "
    "You answer with a JSON array only."
)

EXTRACT_RULES = {
    "Sector_analysis": (
        "This is a sector analysis. Keep every listed company that belongs to "
        "the sector, including companies mentioned only for comparison."
    ),
    "Company_analysis": (
        "This is a single-company analysis. Keep ONLY the company that is the "
        "subject of the article. Drop peers, customers, suppliers and any "
        "other incidental mention."
    ),
    "default": (
        "Keep the companies the article analyses or reports on. Drop passing "
        "mentions and examples."
    ),
}

EXTRACT_PROMPT = """Classification: {classification}
{rules}

Brands and subsidiaries must be mapped to the listed parent company, for
example Blinkit -> Eternal, Paytm -> One97 Communications, Jio -> Reliance
Industries. Use the official listed company name. Ignore companies that only
appear in related-post lists, navigation or footers.

Candidates seen by a first reader: {candidates}

Title: {title}

Article:
{content}

Respond with a JSON array:
[{{"company": "<listed company name>", "description": "<one line on why>"}}]
Respond with [] if no listed company qualifies."""

VALIDATE_SYSTEM = (
    "You check whether companies matched from a stock exchange list are really "
    "the companies a blog post talks about. You answer with a JSON array only."
)

VALIDATE_PROMPT = """For each candidate, decide whether the listed company is the
one the article discusses. Compare the company's line of business with the
article's subject. Reject same-name or similar-name companies from a different
sector.

Candidates:
{candidates}

Title: {title}

Article:
{content}

Respond with a JSON array, one entry per candidate:
[{{"company": "<candidate listed name>", "isMatch": true|false, "reason": "<short reason>", "confidence": <0.0-1.0>}}]"""

SUMMARIZE_SYSTEM = "You write terse investment summaries. You answer with JSON only."

SUMMARIZE_PROMPT = """Summarize the investment thesis of this post in at most 60 words,
thesis first, no filler. Then tag the author's stance with exactly one of
bullish, bearish or neutral.

Title: {title}

Article:
{content}

Respond with JSON:
{{"summary": "<summary>", "sentiment": "bullish|bearish|neutral"}}"""

HTML_EXTRACT_SYSTEM = (
    "You extract blog post listings from raw HTML. You answer with a JSON array only."
)

HTML_EXTRACT_PROMPT = """The HTML below is a blog's listing page ({url}).
Extract every blog post it links to. Skip navigation, category, tag, author
and pagination links.

For each post return:
- title: the post title
- link: the post URL exactly as it appears in the href
- published: the publication date if shown, else null
- author: the author if shown, else null
- image: the thumbnail URL if shown, else null

HTML:
{html}

Respond with a JSON array:
[{{"title": "...", "link": "...", "published": null, "author": null, "image": null}}]
Respond with [] if there are no posts."""
