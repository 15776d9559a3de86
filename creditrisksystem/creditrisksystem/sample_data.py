"""Small hand-made credit risk CSV used by the test suites."""
from pathlib import Path

from staging.loader import STAGING_COLUMNS

# person_age, person_income, person_home_ownership, person_emp_length, loan_amnt,
# loan_intent, loan_grade, loan_int_rate, loan_percent_income,
# cb_person_default_on_file, cb_person_cred_hist_length, loan_status
SAMPLE_ROWS = [
    '22,59000,RENT,123.0,35000,PERSONAL,D,16.02,0.59,Y,3,1',
    '21,9600,OWN,5.0,1000,EDUCATION,B,11.14,0.1,N,2,0',
    '25,9600,MORTGAGE,1.0,5500,MEDICAL,C,12.87,0.57,N,3,1',
    '23,65500,RENT,4.0,35000,MEDICAL,C,15.23,0.53,N,2,1',
    '24,54400,RENT,8.0,35000,MEDICAL,C,14.27,0.55,Y,4,1',
    '21,9900,OWN,2.0,2500,VENTURE,A,7.14,0.25,N,2,1',
    '26,77100,RENT,8.0,35000,EDUCATION,B,12.42,0.45,N,3,0',
    '24,78956,RENT,5.0,9999.99,MEDICAL,B,11.11,0.44,N,4,0',
    '30,50000,RENT,,12000,PERSONAL,B,,0.24,N,6,0',
    '144,250000,MORTGAGE,4.0,3000,VENTURE,A,7.9,0.01,N,25,1',
]

SAMPLE_DEFAULTS = sum(1 for row in SAMPLE_ROWS if row.endswith(',1'))


def write_sample_csv(path, rows=None, header=None):
    path = Path(path)
    lines = [','.join(header or STAGING_COLUMNS)]
    lines.extend(SAMPLE_ROWS if rows is None else rows)
    path.write_text('\n'.join(lines) + '\n')
    return path
