"""
Worksheet MCQ Extractor
=======================
Extracts multiple-choice questions from scanned and PDF worksheets.

Architecture:
    - Text Extractor: PDF text layer (PyMuPDF) or OCR (Tesseract) → raw text
    - Noise Filter: Drops watermark, stamp and repeated header/footer lines
    - Option Tokenizer: Splits a line into leading text + lettered options
    - State Machine: Segments lines into question records
    - Result Assembler: Drops header entries, computes stats, formats output

Version: 1.0.0
"""

__version__ = "1.0.0"
