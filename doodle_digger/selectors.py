"""
selectors.py — Locators for the Google Account profile-picture picker.

The picker renders obfuscated class names and jsname attributes, no ids.
Each locator is a Selenium (By, value) pair; XPath is used where the match
depends on text or on a sibling relationship.

Screen stack inside the picker iframe:

  collections   section.u4mwyd  → div.LWctvf (class) → button (open class)
  class         div[role=listitem] → button (open picture)
  picture       "Presets" heading → sibling div → radio inputs, "Next"
  preview       div.VnojDb.aAuPs → img.x1Lcpf layers, "Cancel"

Every stacked screen keeps its own identical "Back" button in the DOM, so
back controls are told apart by position only.
"""

from __future__ import annotations

from selenium.webdriver.common.by import By

# ── Page / iframe bootstrap ───────────────────────────────────────────────────

CHANGE_PHOTO_BUTTON = (By.CSS_SELECTOR, 'div[aria-label="Change profile photo"]')
IFRAMES             = (By.TAG_NAME, "iframe")
FRAME_DIALOG        = (By.CSS_SELECTOR, 'div[role="dialog"]')
FRAME_SECTION       = (By.TAG_NAME, "section")
CHANGE_BUTTON       = (By.CSS_SELECTOR, 'button[jsname="oKomv"]')
PICKER_FRAME_INDEX  = 2   # third iframe once "Change" has been clicked

# ── Collections screen ────────────────────────────────────────────────────────

COLLECTION_SECTIONS = (By.CSS_SELECTOR, "section.u4mwyd")
COLLECTION_TITLE    = (By.CSS_SELECTOR, "h3")
CLASS_ITEMS         = (By.CSS_SELECTOR, "div.LWctvf")
CLASS_TITLE         = (By.CSS_SELECTOR, ".nvhd9d")
CLASS_BUTTON        = (By.CSS_SELECTOR, "button.WPmjde.Iq3YXe")

# ── Class screen ──────────────────────────────────────────────────────────────

PICTURE_ITEMS  = (By.CSS_SELECTOR, 'div[role="listitem"]')
PICTURE_BUTTON = (By.CSS_SELECTOR, "button.EbkQ6c.Iq3YXe")

# ── Picture screen ────────────────────────────────────────────────────────────

PICTURE_TITLE       = (By.CSS_SELECTOR, "h1.i2Djkc")
PICTURE_TITLE_INDEX = 2   # one h1.i2Djkc per stacked screen; the picture's is third
PRESETS_HEADING     = (By.XPATH, '//div[@role="heading" and contains(., "Presets")]')
PRESETS_CONTAINER   = (By.XPATH, './following-sibling::div[contains(@class, "l1xIwe")]')
PRESET_RADIOS       = (By.CSS_SELECTOR, 'input[type="radio"][name="wtduFd"]')
NEXT_BUTTON         = (
    By.XPATH,
    '//button[.//span[@jsname="V67aGc" and contains(., "Next")]]'
    ' | //button[@jsname="yTKzd" and contains(., "Next")]',
)

# ── Preview screen ────────────────────────────────────────────────────────────

PREVIEW_CONTAINER = (By.CSS_SELECTOR, "div.VnojDb.aAuPs")
LAYER_IMAGES      = (By.CSS_SELECTOR, "img.x1Lcpf")
CANCEL_BUTTON     = (By.XPATH, '//button[@jsname="QApdW" and contains(., "Cancel")]')

# ── Back controls ─────────────────────────────────────────────────────────────

BACK_BUTTONS        = (By.CSS_SELECTOR, 'button[jsname="fYZky"][aria-label="Back"]')
BACK_TO_CLASS       = 2   # shown on the picture screen
BACK_TO_COLLECTIONS = 1   # shown on the class screen
