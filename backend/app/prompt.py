"""Prompt construction for the research, specification and blueprint stages."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.analyzer import AnalysisInput


RESEARCH_SYSTEM = "You are a mobile app architecture expert. Provide detailed technical analysis."

SPECIFICATION_SYSTEM = "You are a backend architect. Create detailed technical specifications."

BLUEPRINT_SECTIONS = """Create a Master Blueprint with exactly 6 sections:

## SECTION 1: OVERVIEW
Provide:
- Tech Stack summary (Frontend: Flutter, Backend: Supabase + Vercel)
- Monetization strategy
- Key features summary

## SECTION 2: DATABASE SCHEMA
Provide complete PostgreSQL/Supabase SQL:
- CREATE TABLE statements for all tables
- Foreign key relationships
- Indexes for performance
- Default values and constraints

## SECTION 3: RLS POLICIES
Provide Row Level Security policies for Supabase:
- SELECT policies (who can read)
- INSERT policies (who can create)
- UPDATE policies (who can modify)
- DELETE policies (who can remove)
Use proper SQL syntax: CREATE POLICY ... ON table_name ...

## SECTION 4: STORAGE BUCKETS
Provide JSON array of storage buckets:
[{"name": "avatars", "public": true}, {"name": "documents", "public": false}]

## SECTION 5: SERVERLESS FUNCTIONS
Provide complete Node.js code for at least 3 Vercel serverless functions:
- Each function in separate ```javascript code block whose first line is a comment with its path, e.g. // api/search.js
- Include error handling and validation
- Use Supabase client for database operations
Example: api/search.js, api/calculate.js, api/process.js

## SECTION 6: PROMPT LIBRARY
Provide:
6.1 FIGMA DESIGN PROMPT: Detailed prompt for designing UI in Figma
6.2 FLUTTERFLOW INSTRUCTIONS: Step-by-step guide for FlutterFlow integration

Format each section with clear headers and code blocks."""


def build_research_prompt(data: AnalysisInput) -> str:
    lines = [
        "Analyze this mobile app project:",
        f"Project Name: {data.project_name}",
    ]
    if data.app_store_link:
        lines.append(f"App Store Link: {data.app_store_link}")
    lines.append(f"Feature Description: {data.feature_description or 'Not provided'}")
    if data.screenshot_urls:
        lines.append("Reference screenshots:")
        lines.extend(f"- {url}" for url in data.screenshot_urls)
    return "\n".join(lines) + """

Research similar apps, identify key features, and provide a comprehensive analysis of:
1. Core functionality requirements
2. User flow and interactions
3. Data models needed
4. Technical considerations
5. Best practices for this type of app

Provide a detailed technical analysis."""


def build_specification_prompt(research: str, data: AnalysisInput) -> str:
    return f"""Based on this analysis:

{research}

For the project "{data.project_name}", create a structured technical specification including:
1. Database schema design (tables, relationships, fields)
2. API endpoints needed (REST/GraphQL)
3. Authentication and authorization requirements
4. File storage requirements
5. Third-party integrations needed

Format the output as a structured document."""


def build_blueprint_prompt(research: str, specification: str, data: AnalysisInput) -> str:
    return f"""You are a technical architect creating a comprehensive "Master Blueprint" for a Flutter mobile app.

Project: {data.project_name}

Initial Analysis:
{research}

Technical Specification:
{specification}

{BLUEPRINT_SECTIONS}"""
