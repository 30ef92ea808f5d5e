import pytest

from pagepulse.page_generator import (
    THEME_OPTIONS, LAYOUT_STYLES, generate_landing_page_content, generate_enhanced_html,
    generate_mock_suggestions, generate_mock_ad_suggestions,
)


def test_content_for_known_campaign():
    result = generate_landing_page_content("Launchpad", "Developers", "SaaS", "Product Launch", ["api", "sdk"])
    content = result['content']

    assert content['headline'] == "Launchpad | Perfect for SaaS Product Launch"
    assert content['subheadline'] == "Introducing the next generation solution for Developers in the SaaS industry"
    assert content['cta'] == "Be First To Access"
    assert content['benefits'] == ["Optimize api performance for Developers", "Optimize sdk performance for Developers"]
    assert content['keyword_suggestions'] == ["optimized api", "optimized sdk"]
    assert len(content['faq_items']) == 3
    assert [t['name'] for t in result['theme_options']] == ["Professional", "Vibrant", "Minimal", "Bold"]


def test_content_defaults_without_keywords():
    content = generate_landing_page_content("X", "Parents", "Education", "Brand Awareness", [])['content']
    assert content['cta'] == "Learn More"
    assert content['subheadline'] == "The perfect solution for Parents in the Education space"
    assert content['benefits'] == content['features']
    assert content['keyword_suggestions'] == [
        "Education solutions", "Brand Awareness optimization", "Education for Parents"
    ]


def test_sale_promotion_uses_default_subheadline_but_own_cta():
    content = generate_landing_page_content("X", "Shoppers", "Retail", "Sale/Discount Promotion", [])['content']
    assert content['cta'] == "Claim Your Discount"
    assert content['subheadline'].startswith("The perfect solution")


@pytest.mark.parametrize("layout", LAYOUT_STYLES)
def test_html_renders_every_layout(layout):
    content = generate_landing_page_content("Launchpad", "Developers", "SaaS", "Product Launch", ["api"])['content']
    html = generate_enhanced_html("Launchpad", "Developers", "SaaS", ["api"], THEME_OPTIONS[1], content, "Image", layout, year=2024)

    assert html.startswith("<!DOCTYPE html>")
    assert "--primary-color: #6d28d9;" in html
    assert "Launchpad | Perfect for SaaS Product Launch" in html
    assert "source.unsplash.com/800x600/?api" in html
    assert "&copy; 2024 Launchpad" in html


def test_html_escapes_user_text():
    content = generate_landing_page_content("<script>x</script>", "A&B", "Tech", "Lead Generation", [])['content']
    html = generate_enhanced_html("<script>x</script>", "A&B", "Tech", [], THEME_OPTIONS[0], content)
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html
    assert "A&amp;B" in html


def test_html_media_choices():
    content = generate_landing_page_content("T", "A", "I", "Lead Generation", [])['content']
    video = generate_enhanced_html("T", "A", "I", [], THEME_OPTIONS[0], content, "Video")
    none = generate_enhanced_html("T", "A", "I", [], THEME_OPTIONS[0], content, "None")

    assert "<video" in video and "<img" not in video
    assert "<video" not in none and "<img" not in none


def test_mock_suggestions_fill_defaults():
    suggestions = generate_mock_suggestions({})
    assert suggestions['headline']['original'] == "Landing Page"
    assert "Technology" in suggestions['cta']['suggested']

    ads = generate_mock_ad_suggestions({'industry': "Real Estate", 'audience': "Buyers"})
    assert ads['facebook']['headline'] == "Real Estate Excellence for Buyers"
    assert ads['instagram']['hashtags'].startswith("#RealEstate")
    assert set(ads) == {"facebook", "instagram", "twitter"}
