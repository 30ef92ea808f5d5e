"""
Landing Page Generator
Template-driven copy and HTML for new landing pages, plus offline suggestion fallbacks.
"""

from datetime import datetime
from html import escape
from urllib.parse import quote

THEME_OPTIONS = [
    {
        "name": "Professional",
        "primary_color": "#1a56db",
        "secondary_color": "#f0f4f8",
        "accent_color": "#10b981",
        "font_family": "'Inter', sans-serif",
        "button_style": "border-radius: 0.5rem; background: var(--primary-color); color: #fff;",
        "layout_style": "clean",
    },
    {
        "name": "Vibrant",
        "primary_color": "#6d28d9",
        "secondary_color": "#ede9fe",
        "accent_color": "#ec4899",
        "font_family": "'Poppins', sans-serif",
        "button_style": "border-radius: 9999px; background: linear-gradient(90deg, var(--primary-color), var(--accent-color)); color: #fff;",
        "layout_style": "modern",
    },
    {
        "name": "Minimal",
        "primary_color": "#262626",
        "secondary_color": "#f5f5f5",
        "accent_color": "#22c55e",
        "font_family": "'Roboto', sans-serif",
        "button_style": "border: 1px solid var(--primary-color); background: #fff; color: var(--primary-color);",
        "layout_style": "minimal",
    },
    {
        "name": "Bold",
        "primary_color": "#be123c",
        "secondary_color": "#fecdd3",
        "accent_color": "#f59e0b",
        "font_family": "'Montserrat', sans-serif",
        "button_style": "border-radius: 0; background: var(--primary-color); color: #fff; box-shadow: 0 10px 15px rgba(0,0,0,0.2);",
        "layout_style": "impact",
    },
]

CAMPAIGN_TYPES = [
    "Lead Generation",
    "Product Launch",
    "Webinar Registration",
    "Event Promotion",
    "Newsletter Signup",
    "Sale/Discount Promotion",
]

LAYOUT_STYLES = [
    "Image Top, Content Below",
    "Content Top, Image Below",
    "Content Left, Image Right",
    "Image Left, Content Right",
    "Full-Width Image Banner",
]

MEDIA_TYPES = ["Image", "Video", "Image and Video", "None"]

VIDEO_URL = "https://assets.mixkit.co/videos/preview/mixkit-office-workers-having-a-business-meeting-42087-large.mp4"

SUBHEADLINES = {
    "Lead Generation": "Get exclusive {industry} insights and resources for {audience}",
    "Product Launch": "Introducing the next generation solution for {audience} in the {industry} industry",
    "Webinar Registration": "Join our expert-led webinar on maximizing success in the {industry} space",
    "Event Promotion": "Don't miss this exclusive {industry} event tailored for {audience}",
    "Newsletter Signup": "Stay updated with the latest {industry} trends, delivered directly to your inbox",
}
DEFAULT_SUBHEADLINE = "The perfect solution for {audience} in the {industry} space"

CTAS = {
    "Lead Generation": "Get Your Free Consultation",
    "Product Launch": "Be First To Access",
    "Webinar Registration": "Reserve Your Spot Now",
    "Event Promotion": "Register Today",
    "Newsletter Signup": "Subscribe Now",
    "Sale/Discount Promotion": "Claim Your Discount",
}
DEFAULT_CTA = "Learn More"


def generate_landing_page_content(title, audience, industry, campaign_type, keywords):
    """
    Builds the structured copy for a landing page from the creator form.

    Returns:
        {'content': {...}, 'theme_options': [...]}
    """
    keywords = list(keywords or [])

    subheadline = SUBHEADLINES.get(campaign_type, DEFAULT_SUBHEADLINE).format(industry=industry, audience=audience)

    features = [
        f"Tailored specifically for {audience}",
        f"Industry-leading {industry} solutions",
        f"Optimized for {campaign_type.lower()} campaigns",
        "Seamless integration with existing systems",
        "Enhanced performance metrics and analytics",
    ]

    testimonial = {
        "quote": f"\"This {industry} solution transformed our approach to {campaign_type.lower()}. The results exceeded our expectations.\"",
        "author": "Satisfied Customer",
        "company": f"Leading {industry} Company",
    }

    faq_items = [
        {
            "question": f"How is this solution specifically tailored for {industry}?",
            "answer": f"Our solution has been designed from the ground up with {industry} businesses in mind, addressing the unique challenges and opportunities in this space.",
        },
        {
            "question": "What kind of results can I expect?",
            "answer": "Our clients typically see significant improvements in engagement, conversion rates, and overall campaign performance within the first month.",
        },
        {
            "question": "Is there ongoing support available?",
            "answer": "Yes, we provide comprehensive support to ensure you get the most out of our platform, including regular updates and dedicated customer success managers.",
        },
    ]

    benefits = [f"Optimize {kw} performance for {audience}" for kw in keywords]

    if keywords:
        keyword_suggestions = [f"optimized {kw}" for kw in keywords]
    else:
        keyword_suggestions = [f"{industry} solutions", f"{campaign_type} optimization", f"{industry} for {audience}"]

    content = {
        "headline": f"{title} | Perfect for {industry} {campaign_type}",
        "subheadline": subheadline,
        "features": features,
        "benefits": benefits or features,
        "cta": CTAS.get(campaign_type, DEFAULT_CTA),
        "testimonial": testimonial,
        "faq_items": faq_items,
        "keyword_suggestions": keyword_suggestions,
    }

    return {"content": content, "theme_options": THEME_OPTIONS}


def _media_html(media_type, image_url, title, css_class="mx-auto max-w-3xl"):
    parts = []
    if "Image" in media_type:
        parts.append(f'<div class="{css_class} media"><img src="{escape(image_url)}" alt="{escape(title)}"></div>')
    if "Video" in media_type:
        parts.append(
            f'<div class="{css_class} media"><video controls><source src="{VIDEO_URL}" type="video/mp4">'
            'Your browser does not support the video tag.</video></div>'
        )
    return "\n".join(parts)


def _hero_copy(content, centered=True):
    align = ' class="center"' if centered else ''
    return f"""
        <div{align}>
          <h1 class="text-primary">{escape(content['headline'])}</h1>
          <p class="lead">{escape(content['subheadline'])}</p>
          <a href="#signup" class="btn">{escape(content['cta'])}</a>
        </div>"""


def _hero_section(layout_style, media_type, image_url, title, content):
    media = _media_html(media_type, image_url, title)

    if layout_style == "Content Top, Image Below":
        inner = _hero_copy(content) + media
        return f'<section class="hero bg-secondary"><div class="container">{inner}</div></section>'

    if layout_style in ("Content Left, Image Right", "Image Left, Content Right"):
        copy = _hero_copy(content, centered=False)
        cells = [copy, f"<div>{media}</div>"]
        if layout_style == "Image Left, Content Right":
            cells.reverse()
        return f'<section class="hero bg-secondary"><div class="container grid-cols-2">{"".join(cells)}</div></section>'

    if layout_style == "Full-Width Image Banner":
        if "Image" in media_type:
            backdrop = f'<img class="banner" src="{escape(image_url)}" alt="{escape(title)}">'
        elif "Video" in media_type:
            backdrop = f'<video class="banner" autoplay muted loop><source src="{VIDEO_URL}" type="video/mp4"></video>'
        else:
            backdrop = ""
        return f'<section class="hero banner-wrap">{backdrop}<div class="banner-overlay">{_hero_copy(content)}</div></section>'

    # Image Top, Content Below
    inner = media + _hero_copy(content)
    return f'<section class="hero bg-secondary"><div class="container">{inner}</div></section>'


def generate_enhanced_html(title, audience, industry, keywords, theme, content, media_type="Image", layout_style="Image Top, Content Below", year=None):
    """
    Renders a complete, self-contained HTML document for a landing page.
    All user-provided text is HTML-escaped.
    """
    keywords = list(keywords or [])
    image_keyword = keywords[0] if keywords else audience
    image_url = f"https://source.unsplash.com/800x600/?{quote(image_keyword)}"
    year = year or datetime.utcnow().year

    features = "\n".join(
        f"""<div class="card"><div class="badge bg-secondary text-primary">{i + 1}</div>
            <h3>{escape(feature)}</h3><p>Enhance your {escape(industry)} experience with our cutting-edge solutions.</p></div>"""
        for i, feature in enumerate(content["features"])
    )

    faqs = "\n".join(
        f'<div class="card"><h3>{escape(item["question"])}</h3><p>{escape(item["answer"])}</p></div>'
        for item in content["faq_items"]
    )

    testimonial = content["testimonial"]

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
  <meta name="description" content="{escape(content['subheadline'])}">
  <link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;700&family=Poppins:wght@400;500;700&family=Roboto:wght@400;500;700&family=Montserrat:wght@400;500;700&display=swap" rel="stylesheet">
  <style>
    :root {{
      --primary-color: {theme['primary_color']};
      --secondary-color: {theme['secondary_color']};
      --accent-color: {theme['accent_color']};
    }}
    body {{ font-family: {theme['font_family']}; color: #333; line-height: 1.6; margin: 0; }}
    .bg-primary {{ background-color: var(--primary-color); color: #fff; }}
    .bg-secondary {{ background-color: var(--secondary-color); }}
    .bg-accent {{ background-color: var(--accent-color); }}
    .text-primary {{ color: var(--primary-color); }}
    .btn {{ {theme['button_style']} display: inline-block; padding: 0.75rem 1.5rem; font-weight: 600; text-decoration: none; }}
    .container {{ max-width: 1200px; margin: 0 auto; padding: 0 1rem; }}
    .center {{ text-align: center; }}
    .hero, section {{ padding: 4rem 0; }}
    .grid-cols-2 {{ display: grid; grid-template-columns: 1fr 1fr; gap: 2rem; align-items: center; }}
    .grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 2rem; }}
    .card {{ background: #fff; padding: 1.5rem; border-radius: 0.5rem; box-shadow: 0 4px 12px rgba(0,0,0,0.08); }}
    .badge {{ display: inline-flex; width: 3rem; height: 3rem; border-radius: 9999px; align-items: center; justify-content: center; }}
    .media img, .media video, img.banner, video.banner {{ width: 100%; height: auto; border-radius: 0.5rem; }}
    .banner-wrap {{ position: relative; padding: 0; }}
    .banner-overlay {{ position: absolute; inset: 0; display: flex; align-items: center; justify-content: center; background: rgba(0,0,0,0.5); color: #fff; }}
    @media (max-width: 768px) {{ .grid-cols-2 {{ grid-template-columns: 1fr; }} }}
  </style>
</head>
<body>
  <header class="bg-primary">
    <div class="container" style="display:flex;justify-content:space-between;align-items:center;padding:1rem;">
      <h2>{escape(title)}</h2>
      <nav><a href="#features">Features</a> &middot; <a href="#testimonials">Testimonials</a> &middot; <a href="#faq">FAQ</a></nav>
    </div>
  </header>
  {_hero_section(layout_style, media_type, image_url, title, content)}
  <section id="features">
    <div class="container">
      <h2 class="center text-primary">Key Features</h2>
      <div class="grid">{features}</div>
    </div>
  </section>
  <section id="testimonials" class="bg-secondary">
    <div class="container">
      <h2 class="center text-primary">What Our Clients Say</h2>
      <div class="card">
        <blockquote>{escape(testimonial['quote'])}</blockquote>
        <strong>{escape(testimonial['author'])}</strong><br><small>{escape(testimonial['company'])}</small>
      </div>
    </div>
  </section>
  <section id="faq">
    <div class="container">
      <h2 class="center text-primary">Frequently Asked Questions</h2>
      <div class="grid">{faqs}</div>
    </div>
  </section>
  <section id="signup" class="bg-primary center">
    <div class="container">
      <h2>Ready to Get Started?</h2>
      <p>Join thousands of satisfied {escape(audience)} who have transformed their {escape(industry)} approach.</p>
      <form><input type="email" placeholder="Enter your email" required> <button type="submit" class="btn bg-accent">{escape(content['cta'])}</button></form>
      <p><small>By signing up, you agree to our Terms and Privacy Policy.</small></p>
    </div>
  </section>
  <footer class="bg-primary">
    <div class="container center"><p>&copy; {year} {escape(title)}. All rights reserved.</p></div>
  </footer>
</body>
</html>
"""


def generate_mock_suggestions(page_info):
    """
    Offline optimization suggestions derived from page info, used when the AI service is unavailable.
    """
    title = page_info.get("title") or "Landing Page"
    industry = page_info.get("industry") or "Technology"
    audience = page_info.get("audience") or "Professionals"

    return {
        "headline": {
            "original": title,
            "suggested": f"{industry} Excellence: Transform Your {audience}'s Experience Today!",
            "reason": "More compelling headline that creates urgency and speaks directly to the target audience.",
        },
        "cta": {
            "original": "Sign Up Now",
            "suggested": f"Start Your {industry} Journey",
            "reason": "Personalized call-to-action that aligns with the industry focus.",
        },
        "content": [
            {
                "section": "Introduction",
                "original": "Welcome to our landing page.",
                "suggested": f"Welcome to the future of {industry}. Designed specifically for {audience} who demand excellence.",
                "reason": "More engaging introduction that highlights industry relevance.",
            },
            {
                "section": "Benefits",
                "original": "We offer many benefits.",
                "suggested": f"Transform your {audience} experience with our proven {industry} solutions.",
                "reason": "Specific benefits that appeal to the target audience in this industry.",
            },
        ],
        "keywords": [
            {"keyword": f"{industry} solutions", "relevance": "high", "suggested_placement": "Title, H1, Meta Description"},
            {"keyword": f"{industry} for {audience}", "relevance": "high", "suggested_placement": "H2, Body Content"},
            {"keyword": "increase efficiency", "relevance": "medium", "suggested_placement": "Body Content, Alt Text"},
        ],
        "structure": [
            {"suggestion": "Add testimonials section", "reason": f"Social proof from other {audience} increases conversion rates."},
            {"suggestion": "Include FAQ section", "reason": f"{audience} typically have common questions about {industry} services."},
        ],
    }


def generate_mock_ad_suggestions(page_info):
    """Offline ad copy for Facebook, Instagram and Twitter."""
    industry = page_info.get("industry") or "Technology"
    audience = page_info.get("audience") or "Professionals"
    tag = industry.replace(" ", "")

    return {
        "facebook": {
            "headline": f"{industry} Excellence for {audience}",
            "primary_text": f"Transform how your business approaches {industry}. Our solution helps {audience} work smarter.\n\nJoin thousands of satisfied clients.",
            "description": f"Specialized {industry} solutions designed for modern {audience}.",
            "cta": "Learn More",
        },
        "instagram": {
            "caption": f"Ready to transform your {industry} approach? Built for {audience} like you.\n\nTap the link in bio to learn more.",
            "hashtags": f"#{tag} #Innovation #BusinessGrowth #Efficiency",
        },
        "twitter": {
            "tweet_copy": f"Transform your {industry} strategy! Built for {audience}. Click to learn more!",
            "hashtags": f"#{tag}Tips #Innovation",
        },
    }
