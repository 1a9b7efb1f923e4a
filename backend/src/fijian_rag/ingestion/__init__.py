"""Dictionary ingestion stages

Processing Flow:
1. Extract text from scanned pages (Textract) or PDF text
2. Segment text into line-based blocks
3. Parse blocks into scored dictionary entries
4. Generate embeddings using Bedrock
"""
