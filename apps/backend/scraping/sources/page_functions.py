"""
Page functions executed remotely by the apify/cheerio-scraper actor.

These are JavaScript source strings shipped in the actor input; they run in
the actor's Node.js sandbox with a cheerio `$` bound to the fetched page.
"""

LINKEDIN_SEARCH_PAGE_FUNCTION = r"""
async function pageFunction(context) {
  const { $ } = context;
  const jobs = [];
  $('div.base-card').each(function() {
    const title   = $(this).find('.base-search-card__title').text().trim();
    const company = $(this).find('.base-search-card__subtitle a').text().trim()
                 || $(this).find('.base-search-card__subtitle').text().trim();
    const location = $(this).find('.job-search-card__location').text().trim();
    const url      = $(this).find('a.base-card__full-link').attr('href') || '';
    const jobId    = (url.match(/view\/(?:[^\/?]*-)?(\d+)/) || [])[1] || '';
    if (title && company) jobs.push({ title, company, location, linkedinUrl: url, jobId, source: 'linkedin' });
  });
  $('li.jobs-search-results__list-item, li[data-occludable-job-id]').each(function() {
    const title   = $(this).find('.job-card-list__title, .base-search-card__title').text().trim();
    const company = $(this).find('.job-card-container__company-name, .base-search-card__subtitle').text().trim();
    const loc     = $(this).find('.job-card-container__metadata-item, .job-search-card__location').text().trim();
    const anchor  = $(this).find('a.job-card-list__title--link, a.base-card__full-link');
    const href    = anchor.attr('href') || '';
    const jobId   = (href.match(/view\/(?:[^\/?]*-)?(\d+)/) || [])[1] || '';
    if (title && company) jobs.push({ title, company, location: loc, linkedinUrl: href, jobId, source: 'linkedin' });
  });
  return jobs;
}
"""

LINKEDIN_DETAIL_PAGE_FUNCTION = r"""
async function pageFunction(context) {
  const { $, request } = context;
  let applyUrl = '';

  $('script[type="application/ld+json"]').each(function() {
    try {
      const data = JSON.parse($(this).html() || '{}');
      if (data.url && !data.url.includes('linkedin.com')) applyUrl = data.url;
      if (data.applicationContact && data.applicationContact.url) applyUrl = data.applicationContact.url;
    } catch (e) {}
  });

  if (!applyUrl) {
    const btn = $('a.apply-button, a[data-tracking-control-name="public_jobs_apply-link-offsite"]');
    const href = btn.attr('href') || '';
    if (href && !href.includes('linkedin.com')) applyUrl = href;
  }

  if (!applyUrl) {
    const match = $.html().match(/"companyApplyUrl":"([^"]+)"/);
    if (match) applyUrl = match[1].replace(/\\u0026/g, '&');
  }

  const description = $('.description__text, .show-more-less-html__markup').text().trim()
    || $('section.description').text().trim();
  const jobId = (request.url.match(/view\/(\d+)/) || [])[1] || '';

  return [{ jobId, applyUrl, description }];
}
"""
