from google import genai
from google.genai import errors, types
from google.api_core.exceptions import ResourceExhausted, NotFound

import os
import json
import re
import time
import logging

from pagepulse.page_generator import generate_mock_suggestions, generate_mock_ad_suggestions

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Raised when no model in the fallback chain produced a response."""


# Models, tried in order after the requested one
MODEL_PRIORITY_CHAIN = [
    'gemini-2.5-flash',
    'gemini-2.5-pro',
    'gemini-2.0-flash',
    'gemini-1.5-flash',
]

DEFAULT_MODEL = MODEL_PRIORITY_CHAIN[0]
MAX_OUTPUT_TOKENS = 1500

NO_MARKETING_RESULT = "No marketing suggestions available at this time"
NO_CONTENT_RESULT = "No content available at this time"

SYSTEM_MESSAGES = {
    'landing_page_content': (
        "You are an AI assistant specialized in creating high-converting landing page content. "
        "You create compelling headlines, persuasive body copy, effective calls to action, and structure "
        "content for maximum impact. Your content is optimized for both user experience and conversion."
    ),
    'page_optimization': (
        "You are an AI assistant specialized in landing page optimization. You analyze landing pages and "
        "provide structured recommendations for improving conversion rates, user engagement, and SEO performance."
    ),
    'ad_generation': (
        "You are an AI assistant specialized in creating platform-specific ad content based on landing pages. "
        "You create optimized ad variations for different platforms maintaining brand consistency while "
        "leveraging platform-specific best practices."
    ),
}
DEFAULT_SYSTEM_MESSAGE = "You are an AI assistant specialized in content generation."

STRUCTURED_MODES = ('page_optimization', 'ad_generation')

ELEMENT_PROMPTS = {
    'headline': 'Optimize this headline for better conversions: "{content}"',
    'button': 'Suggest better button text for this CTA: "{content}"',
    'paragraph': 'Rewrite this paragraph to be more engaging and persuasive: "{content}"',
    'cta': 'Optimize this call-to-action for better conversion: "{content}"',
    'general': 'Analyze this landing page content and suggest improvements: "{content}"',
}

MARKETING_SYSTEM_PROMPT = (
    "You are an AI assistant specialized in digital marketing and landing page optimization.\n"
    "Your task is to analyze the landing page content and generate marketing recommendations."
)

MARKETING_USER_PROMPT = """Given the following inputs:

Landing Page URL: {url}
Target Audience: {audience}
Industry: {industry}
Desired Tone: {tone}

Analyze the landing page content and generate:

High-Intent Keyword Suggestions:
- Categorized by funnel stages: Awareness, Consideration, Decision.
- Tailored for platforms: Google Search, Display, Facebook, LinkedIn.

Ad Copy Variations:
- Google Search Ads: 3 headlines and 2 descriptions.
- Google Display Ads: 2 banner headlines and 2 short descriptions.
- Facebook/Instagram Ads: 2 primary texts and 2 headline & CTA pairs.
- LinkedIn Ads: 2 InMail intros, bodies, and CTA lines.

A/B Testing Recommendations:
- Suggestions on headlines, CTAs, or visuals to test.
- Based on best practices and marketing trends.

Ensure the content aligns with the specified tone and is optimized for the respective platforms. Include emojis where appropriate for social media platforms to enhance engagement."""


def calculate_readability(text):
    """
    Calculates the Flesch-Kincaid Grade Level.
    """
    if not text or not isinstance(text, str):
        return 0

    words = text.split()
    sentences = max(1, len(re.findall(r'[.!?]+', text)))
    syllables = 0

    for word in words:
        word = word.lower().strip(".,!?;:\"'()")
        if not word:
            continue
        groups = re.findall(r'[aeiouy]+', word)
        count = len(groups)
        if word.endswith("e") and count > 1:
            count -= 1
        syllables += max(1, count)

    word_count = max(1, len(words))
    score = 0.39 * (word_count / sentences) + 11.8 * (syllables / word_count) - 15.59
    return round(max(0, score), 1)


def extract_first_json_object(text):
    """
    Returns the first balanced {...} or [...] block in the text, or None.
    """
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if not starts:
        return None
    start = min(starts)
    open_char = text[start]
    close_char = '}' if open_char == '{' else ']'

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_json_response(response_text):
    """
    Parses JSON out of a model reply, tolerating markdown fences, trailing commentary and trailing commas.
    Returns None when nothing parseable is found.
    """
    if not response_text or not isinstance(response_text, str):
        return None

    fenced = re.search(r'```(?:json)?\s*(.*?)\s*```', response_text, re.DOTALL)
    candidates = [response_text.strip()]
    if fenced:
        candidates.insert(0, fenced.group(1))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

        extracted = extract_first_json_object(candidate)
        if extracted:
            try:
                return json.loads(extracted)
            except json.JSONDecodeError:
                # Trailing commas are the most common defect
                repaired = re.sub(r',(\s*[}\]])', r'\1', extracted)
                try:
                    return json.loads(repaired)
                except json.JSONDecodeError:
                    continue

    logger.warning("JSON parsing failed. Raw content start: %s", response_text[:200])
    return None


def generate_gemini_response(prompt, system_instruction=None, model_name=None, temperature=0.7):
    """
    Generates content using Gemini models with cascading fallback and exponential backoff.
    Returns "" when a model answered with no text and no model produced any.
    Raises AIServiceError when every model errored.
    """
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        raise AIServiceError("GEMINI_API_KEY is not set")

    try:
        client = genai.Client(api_key=api_key)
    except Exception as e:
        raise AIServiceError(f"Failed to initialize client: {e}") from e

    config = types.GenerateContentConfig(
        temperature=temperature,
        max_output_tokens=MAX_OUTPUT_TOKENS,
        system_instruction=system_instruction,
    )

    # Requested model first, then the rest of the chain
    execution_chain = [model_name] if model_name else []
    execution_chain += [m for m in MODEL_PRIORITY_CHAIN if m not in execution_chain]

    last_error = None
    answered_empty = False

    for index, model_id in enumerate(execution_chain):
        try:
            response = client.models.generate_content(
                model=model_id,
                contents=prompt,
                config=config
            )
            if response.text:
                return response.text
            answered_empty = True
            last_error = f"Empty response from {model_id}"

        except (ResourceExhausted, NotFound, errors.ClientError) as e:
            code = getattr(e, 'code', None)
            if isinstance(e, ResourceExhausted) or code == 429:
                wait_time = 2 ** index
                logger.warning("Rate limit hit for %s. Sleeping %ss...", model_id, wait_time)
                time.sleep(wait_time)
                last_error = f"ResourceExhausted on {model_id}"
            elif isinstance(e, NotFound) or code == 404:
                logger.warning("Model %s not found. Skipping...", model_id)
                last_error = f"NotFound: {model_id}"
            else:
                logger.warning("Error with %s: %s", model_id, e)
                last_error = str(e)

        except Exception as e:
            logger.warning("Error with %s: %s", model_id, e)
            last_error = str(e)

    if answered_empty:
        logger.warning("No model returned text. Last error: %s", last_error)
        return ""

    logger.error("All models failed. Last error: %s", last_error)
    raise AIServiceError(f"All models failed. Last error: {last_error}")


def build_marketing_prompt(landing_page_url, audience_type=None, industry=None, tone=None):
    """
    Returns (system_prompt, user_prompt) for the marketing optimization request.
    """
    if not landing_page_url:
        raise ValueError("No landing page URL provided")

    user_prompt = MARKETING_USER_PROMPT.format(
        url=landing_page_url,
        audience=audience_type or "Not specified",
        industry=industry or "Not specified",
        tone=tone or "professional",
    )
    return MARKETING_SYSTEM_PROMPT, user_prompt


def generate_marketing_optimizations(landing_page_url, audience_type=None, industry=None, tone=None, model_name=None):
    """
    Keyword, ad copy and A/B test recommendations for a landing page, as model text.
    """
    system_prompt, user_prompt = build_marketing_prompt(landing_page_url, audience_type, industry, tone)
    text = generate_gemini_response(user_prompt, system_instruction=system_prompt, model_name=model_name)
    return text or NO_MARKETING_RESULT


def generate_ai_content(prompt, mode=None, model_name=None):
    """
    Generates content with a mode-specific system message.
    Structured modes return parsed JSON when the reply is JSON, otherwise the raw text.
    """
    if not prompt:
        raise ValueError("No prompt provided")

    system_message = SYSTEM_MESSAGES.get(mode, DEFAULT_SYSTEM_MESSAGE)
    text = generate_gemini_response(prompt, system_instruction=system_message, model_name=model_name)
    if not text:
        text = NO_CONTENT_RESULT

    if mode in STRUCTURED_MODES:
        parsed = parse_json_response(text)
        if parsed is not None:
            return parsed
    return text


def generate_optimized_content(page_content, element_type='general', model_name=None):
    """
    AI rewrite of a single page element (headline, button, paragraph, cta, general).
    """
    if element_type not in ELEMENT_PROMPTS:
        raise ValueError(f"Unknown element type: {element_type}")
    prompt = ELEMENT_PROMPTS[element_type].format(content=page_content)
    return generate_ai_content(prompt, model_name=model_name)


PAGE_HTML_LIMIT = 8000

PAGE_OPTIMIZATION_PROMPT = """Analyze this landing page and suggest improvements.

Title: {title}
Target Audience: {audience}
Industry: {industry}
Campaign Type: {campaign_type}
Keywords: {keywords}

HTML:
{html}

Respond with JSON only, shaped like:
{{"headline": {{"original": "", "suggested": "", "reason": ""}},
 "cta": {{"original": "", "suggested": "", "reason": ""}},
 "content": [{{"section": "", "original": "", "suggested": "", "reason": ""}}],
 "keywords": [{{"keyword": "", "relevance": "high|medium|low", "suggested_placement": ""}}],
 "structure": [{{"suggestion": "", "reason": ""}}]}}"""

AD_GENERATION_PROMPT = """Create ad copy for this landing page.

Title: {title}
Target Audience: {audience}
Industry: {industry}
Campaign Type: {campaign_type}
Keywords: {keywords}

HTML:
{html}

Respond with JSON only, shaped like:
{{"facebook": {{"headline": "", "primary_text": "", "description": "", "cta": ""}},
 "instagram": {{"caption": "", "hashtags": ""}},
 "twitter": {{"tweet_copy": "", "hashtags": ""}}}}"""


def _page_prompt(template, html_content, page_info):
    keywords = page_info.get('keywords') or page_info.get('initial_keywords') or []
    return template.format(
        title=page_info.get('title') or "Untitled",
        audience=page_info.get('audience') or "Not specified",
        industry=page_info.get('industry') or "Not specified",
        campaign_type=page_info.get('campaign_type') or "Not specified",
        keywords=(keywords if isinstance(keywords, str) else ", ".join(keywords)) or "None",
        html=(html_content or "")[:PAGE_HTML_LIMIT],
    )


def generate_page_optimizations(html_content, page_info, model_name=None):
    """
    Structured optimization suggestions for a whole page (headline, CTA, content,
    keywords, structure). Falls back to template suggestions when the reply isn't JSON.
    """
    prompt = _page_prompt(PAGE_OPTIMIZATION_PROMPT, html_content, page_info)
    result = generate_ai_content(prompt, mode='page_optimization', model_name=model_name)
    if isinstance(result, dict):
        return result
    logger.warning("Page optimization reply was not JSON; using template suggestions")
    return generate_mock_suggestions(page_info)


def generate_ad_suggestions(html_content, page_info, model_name=None):
    """
    Facebook, Instagram and Twitter ad copy for a page. Falls back to template ads
    when the reply isn't JSON.
    """
    prompt = _page_prompt(AD_GENERATION_PROMPT, html_content, page_info)
    result = generate_ai_content(prompt, mode='ad_generation', model_name=model_name)
    if isinstance(result, dict):
        return result
    logger.warning("Ad generation reply was not JSON; using template ads")
    return generate_mock_ad_suggestions(page_info)
