"""KTP OCR.

Extracts structured identity fields from photographs of Indonesian
national identity cards (KTP) by binarizing the image for Tesseract
and parsing the noisy recognized text with an ordered rule table.
"""
